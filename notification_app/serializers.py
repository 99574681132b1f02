from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source='kind')
    actionUrl = serializers.CharField(source='action_url')
    timestamp = serializers.DateTimeField(source='created_at')

    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'title',
            'message',
            'actionUrl',
            'read',
            'timestamp',
        ]
        read_only_fields = fields

from django.contrib.auth.tokens import PasswordResetTokenGenerator
from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    isActive = serializers.BooleanField(source="is_active", read_only=True)
    reviewCount = serializers.IntegerField(source="review_count", read_only=True)
    helpfulVotes = serializers.IntegerField(source="helpful_votes", read_only=True)
    authProvider = serializers.CharField(source="auth_provider", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    lastLogin = serializers.DateTimeField(source="last_login", read_only=True)

    class Meta:
        model = User
        fields = (
            "id", "email", "name", "role", "avatar", "reputation", "reviewCount",
            "helpfulVotes", "authProvider", "isActive", "createdAt", "lastLogin",
        )
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        error_messages={
            "min_length": "Password must be at least 8 characters long.",
        }
    )
    name = serializers.CharField(max_length=100)

    def validate_email(self, value):
        return value.lower()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value


class LoginUserSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshTokenSerializer(serializers.Serializer):
    refreshToken = serializers.CharField(required=False)


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    email = serializers.EmailField()
    token = serializers.CharField()
    new_password = serializers.CharField(min_length=8, write_only=True)

    def validate(self, attrs):
        user = User.objects.filter(email=attrs['email'].lower(), is_active=True).first()
        if not user or not PasswordResetTokenGenerator().check_token(user, attrs['token']):
            raise serializers.ValidationError("Invalid or expired token.")
        attrs['user'] = user
        return attrs

    def save(self):
        user = self.validated_data['user']
        user.set_password(self.validated_data['new_password'])
        user.save(update_fields=["password"])
        return user


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from utils.responses import success_response

from .models import Notification
from .pagination import NotificationCursorPagination
from .serializers import NotificationSerializer


@extend_schema(
    parameters=[
        OpenApiParameter('unread_only', OpenApiTypes.BOOL),
        OpenApiParameter('limit', OpenApiTypes.INT),
    ],
    summary="List notifications, newest first",
)
class NotificationListView(generics.ListAPIView):
    """
    GET /api/notifications?unread_only=<true|false>&before=<cursor>&limit=<n>
    DELETE /api/notifications clears the feed.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = NotificationCursorPagination

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.request.query_params.get('unread_only', '').lower() in ('1', 'true', 'yes'):
            queryset = queryset.filter(read=False)
        return queryset

    def delete(self, request):
        deleted = request.app_context.notifications_for(request.user).clear()
        return success_response({"deleted": deleted}, message="Notifications cleared.")


class NotificationReadView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(request=None, summary="Mark one notification as read")
    def post(self, request, notification_id):
        request.app_context.notifications_for(request.user).mark_read(notification_id)
        return success_response(message="Notification marked as read.")


class NotificationReadAllView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(request=None, summary="Mark every notification as read")
    def post(self, request):
        updated = request.app_context.notifications_for(request.user).mark_all_read()
        return success_response({"updated": updated}, message="All notifications marked as read.")


class UnreadCountView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(summary="Number of unread notifications")
    def get(self, request):
        return success_response({"unread": request.app_context.notifications_for(request.user).unread_count()})

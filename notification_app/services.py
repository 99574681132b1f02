import logging

from utils import errors

from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger("rest_framework")


class NotificationService:
    """
    Per-user notification feed. Only the newest `MAX_PER_USER` entries are
    kept; every new entry is also pushed to the user's WebSocket group.
    """

    MAX_PER_USER = 50

    def __init__(self, user, broadcaster=None, enabled=True):
        self.user = user
        self.broadcaster = broadcaster
        self.enabled = enabled

    def _queryset(self):
        return Notification.objects.filter(user=self.user)

    def add(self, kind, title, message, action_url=""):
        if not self.enabled or self.user is None or not getattr(self.user, "is_authenticated", False):
            return None

        notification = Notification.objects.create(
            user=self.user,
            kind=kind,
            title=title[:200],
            message=message[:1000],
            action_url=action_url,
        )
        self._trim()

        if self.broadcaster is not None:
            self.broadcaster.to_user(self.user.pk, "notification", NotificationSerializer(notification).data)
        return notification

    def success(self, title, message, **kwargs):
        return self.add(Notification.Kind.SUCCESS, title, message, **kwargs)

    def error(self, title, message, **kwargs):
        return self.add(Notification.Kind.ERROR, title, message, **kwargs)

    def warning(self, title, message, **kwargs):
        return self.add(Notification.Kind.WARNING, title, message, **kwargs)

    def info(self, title, message, **kwargs):
        return self.add(Notification.Kind.INFO, title, message, **kwargs)

    def degraded(self, operation, result):
        """Fallback-orchestrator hook: tell the user which tier answered."""
        label = operation.replace("_", " ")
        return self.warning(
            "Degraded service",
            f"Primary service unavailable; {label} was served from the {result.tier} tier.",
        )

    def mark_read(self, notification_id):
        if not self._queryset().filter(pk=notification_id).update(read=True):
            raise errors.NotFoundError("Notification not found.")

    def mark_all_read(self):
        return self._queryset().filter(read=False).update(read=True)

    def unread_count(self):
        return self._queryset().filter(read=False).count()

    def clear(self):
        deleted, _ = self._queryset().delete()
        return deleted

    def _trim(self):
        keep = list(self._queryset().values_list("id", flat=True)[:self.MAX_PER_USER])
        self._queryset().exclude(id__in=keep).delete()

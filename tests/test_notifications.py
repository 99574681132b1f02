import pytest

from notification_app.broadcast import envelope
from notification_app.models import Notification
from notification_app.services import NotificationService

from .conftest import UserFactory

pytestmark = pytest.mark.django_db

NOTIFICATIONS_URL = "/api/notifications/"


class TestNotificationService:
    def test_keeps_only_the_newest_entries(self, user):
        service = NotificationService(user)
        for index in range(NotificationService.MAX_PER_USER + 5):
            service.info(f"n{index}", "message")

        titles = set(Notification.objects.filter(user=user).values_list("title", flat=True))
        assert len(titles) == NotificationService.MAX_PER_USER
        assert "n0" not in titles
        assert f"n{NotificationService.MAX_PER_USER + 4}" in titles

    def test_trim_is_per_user(self, user, other_user):
        NotificationService(other_user).info("keep me", "message")
        service = NotificationService(user)
        for index in range(NotificationService.MAX_PER_USER + 1):
            service.info(f"n{index}", "message")

        assert Notification.objects.filter(user=other_user).count() == 1

    def test_disabled_service_stores_nothing(self, user):
        assert NotificationService(user, enabled=False).success("Hi", "there") is None
        assert not Notification.objects.exists()

    def test_anonymous_users_get_nothing(self):
        from django.contrib.auth.models import AnonymousUser

        assert NotificationService(AnonymousUser()).info("Hi", "there") is None

    def test_new_entries_are_pushed_to_the_user_group(self, user):
        sent = []

        class RecordingBroadcaster:
            def to_user(self, user_id, message_type, data=None):
                sent.append((user_id, message_type, data["title"]))

        NotificationService(user, broadcaster=RecordingBroadcaster()).warning("Careful", "text")

        assert sent == [(user.pk, "notification", "Careful")]

    def test_read_state(self, user):
        service = NotificationService(user)
        first = service.info("a", "1")
        service.info("b", "2")

        service.mark_read(first.pk)
        assert service.unread_count() == 1
        assert service.mark_all_read() == 1
        assert service.unread_count() == 0

    def test_cannot_mark_someone_elses_notification(self, user, other_user):
        from utils import errors

        notification = NotificationService(other_user).info("private", "text")

        with pytest.raises(errors.NotFoundError):
            NotificationService(user).mark_read(notification.pk)


def test_envelope_shape():
    message = envelope("review_update", {"reviewId": "r1"})

    assert message["type"] == "review_update"
    assert message["data"] == {"reviewId": "r1"}
    assert isinstance(message["timestamp"], int)
    assert len(message["id"]) == 9


class TestNotificationApi:
    def test_requires_authentication(self, api_client):
        assert api_client.get(NOTIFICATIONS_URL).status_code == 401

    def test_list_newest_first_and_unread_filter(self, client_for, user):
        service = NotificationService(user)
        old = service.info("old", "1")
        service.info("new", "2")
        service.mark_read(old.pk)
        client = client_for(user)

        listed = client.get(NOTIFICATIONS_URL).json()["data"]["notifications"]
        unread = client.get(NOTIFICATIONS_URL, {"unread_only": "true"}).json()["data"]["notifications"]

        assert [row["title"] for row in listed] == ["new", "old"]
        assert [row["title"] for row in unread] == ["new"]
        assert listed[0]["type"] == "info"

    def test_cursor_pagination(self, client_for, user):
        service = NotificationService(user)
        for index in range(3):
            service.info(f"n{index}", "text")
        client = client_for(user)

        first = client.get(NOTIFICATIONS_URL, {"limit": 2}).json()["data"]
        second = client.get(first["next"]).json()["data"]

        assert [row["title"] for row in first["notifications"]] == ["n2", "n1"]
        assert [row["title"] for row in second["notifications"]] == ["n0"]

    def test_counts_and_bulk_actions(self, client_for, user):
        service = NotificationService(user)
        notification = service.info("a", "1")
        service.info("b", "2")
        client = client_for(user)

        assert client.get(f"{NOTIFICATIONS_URL}unread-count").json()["data"] == {"unread": 2}
        assert client.post(f"{NOTIFICATIONS_URL}{notification.pk}/read").status_code == 200
        assert client.post(f"{NOTIFICATIONS_URL}read-all").json()["data"] == {"updated": 1}
        assert client.delete(NOTIFICATIONS_URL).json()["data"] == {"deleted": 2}
        assert not Notification.objects.filter(user=user).exists()

    def test_unknown_notification(self, client_for, user):
        other = UserFactory()
        notification = NotificationService(other).info("theirs", "text")

        response = client_for(user).post(f"{NOTIFICATIONS_URL}{notification.pk}/read")

        assert response.status_code == 404

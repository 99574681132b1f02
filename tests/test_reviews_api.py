from dataclasses import replace
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from core.context import get_app_context, override_app_context
from notification_app.models import Notification
from review_analysis.hashing import content_hash, review_hash_payload
from review_rating.models import Review, ReviewImage
from review_rating.verification import PurchaseVerification, PurchaseVerifier
from users.models import User

from .conftest import ReviewFactory

pytestmark = pytest.mark.django_db

REVIEWS_URL = "/api/reviews/"


class StaticVerifier(PurchaseVerifier):
    def __init__(self, verified=True):
        self.verified = verified

    def lookup(self, qr_code):
        return PurchaseVerification(
            verified=self.verified,
            product_id=qr_code,
            product_name="Pixel Buds",
            order_id="ORD-TEST00001",
            retailer="Amazon",
        )


def _png(name="photo.png", size=(1200, 900)):
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 40, 40)).save(buffer, format="PNG")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="image/png")


class TestListing:
    def test_anonymous_sees_only_approved_reviews(self, api_client):
        approved = ReviewFactory()
        ReviewFactory(status=Review.Status.PENDING)

        response = api_client.get(REVIEWS_URL)

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert [review["id"] for review in body["data"]["reviews"]] == [str(approved.pk)]
        assert body["data"]["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
        assert body["meta"] == {"source": "database", "degraded": False}

    def test_admin_can_list_pending(self, client_for, moderator):
        pending = ReviewFactory(status=Review.Status.PENDING)

        response = client_for(moderator).get(REVIEWS_URL, {"status": "pending"})

        assert [review["id"] for review in response.json()["data"]["reviews"]] == [str(pending.pk)]

    def test_invalid_query_parameter(self, api_client):
        response = api_client.get(REVIEWS_URL, {"limit": 500})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_camel_case_representation(self, api_client):
        review = ReviewFactory()

        row = api_client.get(REVIEWS_URL).json()["data"]["reviews"][0]

        assert row["productName"] == review.product_name
        assert row["author"]["id"] == str(review.author_id)
        assert {"sentimentScore", "isFake", "blockchainHash", "reportCount", "images"} <= set(row)

    def test_punctuation_only_search(self, api_client):
        review = ReviewFactory()

        response = api_client.get(REVIEWS_URL, {"search": "!!!"})

        assert response.status_code == 200
        assert [row["id"] for row in response.json()["data"]["reviews"]] == [str(review.pk)]

    def test_malformed_author_id(self, api_client):
        response = api_client.get(REVIEWS_URL, {"userId": "not-a-uuid"})

        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert "userId" in body["message"]

    def test_page_past_the_end(self, api_client):
        ReviewFactory()

        body = api_client.get(REVIEWS_URL, {"page": 3}).json()

        assert body["data"]["reviews"] == []
        assert body["data"]["pagination"] == {"page": 3, "limit": 10, "total": 1, "pages": 1}

    def test_collection_answers_without_trailing_slash(self, api_client):
        ReviewFactory()

        response = api_client.get("/api/reviews")

        assert response.status_code == 200
        assert len(response.json()["data"]["reviews"]) == 1


class TestCreate:
    def test_create_without_trailing_slash(self, client_for, user, review_payload):
        response = client_for(user).post("/api/reviews", review_payload, format="json")

        assert response.status_code == 201
        assert Review.objects.filter(author=user).count() == 1

    def test_requires_authentication(self, api_client, review_payload):
        response = api_client.post(REVIEWS_URL, review_payload, format="json")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_creates_pending_review_and_notifies_author(self, client_for, user, review_payload):
        response = client_for(user).post(
            REVIEWS_URL, review_payload, format="json", HTTP_USER_AGENT="pytest-agent", REMOTE_ADDR="10.0.0.9"
        )

        assert response.status_code == 201
        data = response.json()["data"]["review"]
        assert data["status"] == "pending"
        assert data["isVerified"] is False

        review = Review.objects.get(pk=data["id"])
        assert review.user_agent == "pytest-agent"
        assert review.ip_address == "10.0.0.9"
        assert Notification.objects.filter(user=user, kind=Notification.Kind.SUCCESS).count() == 1

    def test_duplicate_product_is_rejected(self, client_for, user, review_payload):
        client = client_for(user)
        client.post(REVIEWS_URL, review_payload, format="json")

        response = client.post(REVIEWS_URL, review_payload, format="json")

        assert response.status_code == 400
        assert response.json()["message"] == "You have already reviewed this product."

    def test_validation_errors_use_the_envelope(self, client_for, user, review_payload):
        response = client_for(user).post(REVIEWS_URL, {**review_payload, "rating": 9}, format="json")

        body = response.json()
        assert response.status_code == 400
        assert body["message"] == "Validation failed."
        assert "rating" in body["errors"]

    def test_qr_code_marks_review_as_verified(self, client_for, user, review_payload):
        context = replace(get_app_context(), purchase_verifier=StaticVerifier())

        with override_app_context(context):
            response = client_for(user).post(
                REVIEWS_URL, {**review_payload, "qrCode": "PRODUCT_BUDS"}, format="json"
            )

        data = response.json()["data"]["review"]
        assert data["isVerified"] is True
        assert data["purchaseData"]["orderId"] == "ORD-TEST00001"

    def test_malformed_qr_code_is_rejected(self, client_for, user, review_payload):
        response = client_for(user).post(REVIEWS_URL, {**review_payload, "qrCode": "BAD"}, format="json")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid QR code format."
        assert not Review.objects.exists()

    def test_enrichment_runs_after_commit(self, client_for, user, review_payload, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            response = client_for(user).post(REVIEWS_URL, review_payload, format="json")

        review = Review.objects.get(pk=response.json()["data"]["review"]["id"])
        assert review.ai_provider == "fallback"
        assert review.sentiment == "positive"
        assert review.blockchain_hash == content_hash(review_hash_payload(review))
        assert review.content_address == review.blockchain_hash
        assert review.blockchain_verified is True
        assert review.enriched_at is not None


class TestDetail:
    def test_retrieve_counts_views(self, api_client):
        review = ReviewFactory()

        api_client.get(f"{REVIEWS_URL}{review.pk}")
        response = api_client.get(f"{REVIEWS_URL}{review.pk}")

        assert response.json()["data"]["review"]["views"] == 2

    def test_pending_review_is_not_found_for_strangers(self, api_client, client_for):
        review = ReviewFactory(status=Review.Status.PENDING)

        assert api_client.get(f"{REVIEWS_URL}{review.pk}").status_code == 404
        assert client_for(review.author).get(f"{REVIEWS_URL}{review.pk}").status_code == 200

    def test_author_edits_pending_review(self, client_for):
        review = ReviewFactory(status=Review.Status.PENDING)

        response = client_for(review.author).patch(f"{REVIEWS_URL}{review.pk}", {"rating": 3}, format="json")

        assert response.status_code == 200
        assert response.json()["data"]["review"]["rating"] == 3

    def test_stranger_cannot_delete(self, client_for, other_user):
        review = ReviewFactory()

        response = client_for(other_user).delete(f"{REVIEWS_URL}{review.pk}")

        assert response.status_code == 403
        assert Review.objects.filter(pk=review.pk).exists()

    def test_author_deletes(self, client_for):
        review = ReviewFactory()

        response = client_for(review.author).delete(f"{REVIEWS_URL}{review.pk}")

        assert response.status_code == 200
        assert not Review.objects.filter(pk=review.pk).exists()


class TestModeration:
    def test_only_admins_moderate(self, client_for, user):
        review = ReviewFactory(status=Review.Status.PENDING)

        response = client_for(user).patch(f"{REVIEWS_URL}{review.pk}/status", {"status": "approved"}, format="json")

        assert response.status_code == 403

    def test_approve_updates_reputation_and_notifies_author(self, client_for, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)

        response = client_for(moderator).patch(
            f"{REVIEWS_URL}{review.pk}/status", {"status": "approved", "moderationNotes": "ok"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["data"]["review"]["status"] == "approved"
        assert response.json()["data"]["review"]["moderatedBy"] == str(moderator.pk)
        author = User.objects.get(pk=review.author_id)
        assert author.reputation == User.STARTING_REPUTATION + 10
        notification = Notification.objects.get(user=author)
        assert notification.title == "Review approved"

    def test_reject_sends_warning(self, client_for, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)

        client_for(moderator).patch(f"{REVIEWS_URL}{review.pk}/status", {"status": "rejected"}, format="json")

        assert Notification.objects.get(user=review.author).kind == Notification.Kind.WARNING

    def test_repeated_decision_has_no_side_effects(self, client_for, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)
        client = client_for(moderator)
        url = f"{REVIEWS_URL}{review.pk}/status"
        client.patch(url, {"status": "approved"}, format="json")
        broadcaster = MagicMock()

        with override_app_context(replace(get_app_context(), broadcaster=broadcaster)):
            response = client.patch(url, {"status": "approved"}, format="json")

        assert response.status_code == 200
        assert "statusChanged" not in response.json()["data"]["review"]
        assert Notification.objects.filter(user=review.author).count() == 1
        broadcaster.review_update.assert_not_called()
        author = User.objects.get(pk=review.author_id)
        assert author.reputation == User.STARTING_REPUTATION + 10

    def test_pending_is_not_an_allowed_target(self, client_for, moderator):
        review = ReviewFactory()

        response = client_for(moderator).patch(f"{REVIEWS_URL}{review.pk}/status", {"status": "pending"}, format="json")

        assert response.status_code == 400


class TestEngagement:
    def test_helpful_once(self, client_for, other_user):
        review = ReviewFactory()
        client = client_for(other_user)

        first = client.post(f"{REVIEWS_URL}{review.pk}/helpful")
        second = client.post(f"{REVIEWS_URL}{review.pk}/helpful")

        assert first.json()["data"] == {"helpful": 1}
        assert second.status_code == 400

    def test_report(self, client_for, other_user):
        review = ReviewFactory()

        response = client_for(other_user).post(f"{REVIEWS_URL}{review.pk}/report", {"reason": "spam"}, format="json")

        assert response.json()["data"] == {"reportCount": 1}

    def test_report_needs_reason(self, client_for, other_user):
        review = ReviewFactory()

        response = client_for(other_user).post(f"{REVIEWS_URL}{review.pk}/report", {}, format="json")

        assert response.status_code == 400


class TestVerifyHash:
    def test_unenriched_review_is_not_verified(self, api_client):
        review = ReviewFactory()

        data = api_client.get(f"{REVIEWS_URL}{review.pk}/verify-hash").json()["data"]

        assert data["verified"] is False
        assert data["computedHash"] == content_hash(review_hash_payload(review))
        assert data["stored"] is False

    def test_enriched_review_is_verified(self, api_client):
        review = ReviewFactory()
        context = get_app_context()
        digest = context.content_store.put(b'{"any":"record"}')
        Review.objects.filter(pk=review.pk).update(
            blockchain_hash=content_hash(review_hash_payload(review)), content_address=digest
        )

        data = api_client.get(f"{REVIEWS_URL}{review.pk}/verify-hash").json()["data"]

        assert data["verified"] is True
        assert data["stored"] is True

    def test_tampered_content_fails_verification(self, api_client):
        review = ReviewFactory()
        Review.objects.filter(pk=review.pk).update(blockchain_hash=content_hash(review_hash_payload(review)))
        Review.objects.filter(pk=review.pk).update(content="Edited behind the API's back, so hashes differ.")

        data = api_client.get(f"{REVIEWS_URL}{review.pk}/verify-hash").json()["data"]

        assert data["verified"] is False


class TestImages:
    def test_author_uploads_optimized_image(self, client_for):
        review = ReviewFactory()

        response = client_for(review.author).post(
            f"{REVIEWS_URL}{review.pk}/images", {"image": _png()}, format="multipart"
        )

        assert response.status_code == 201
        image = ReviewImage.objects.get(review=review)
        assert image.filename == "photo.png"
        with Image.open(image.image) as stored:
            assert max(stored.size) == 800

    def test_image_limit(self, client_for, settings):
        settings.MAX_IMAGES_PER_REVIEW = 1
        review = ReviewFactory()
        client = client_for(review.author)
        client.post(f"{REVIEWS_URL}{review.pk}/images", {"image": _png()}, format="multipart")

        response = client.post(f"{REVIEWS_URL}{review.pk}/images", {"image": _png("second.png")}, format="multipart")

        assert response.status_code == 400
        assert ReviewImage.objects.filter(review=review).count() == 1

    def test_non_image_rejected(self, client_for):
        review = ReviewFactory()
        upload = SimpleUploadedFile("notes.txt", b"plain text", content_type="text/plain")

        response = client_for(review.author).post(
            f"{REVIEWS_URL}{review.pk}/images", {"image": upload}, format="multipart"
        )

        assert response.status_code == 400


class TestVerifyPurchase:
    def test_verified_purchase(self, api_client):
        with override_app_context(replace(get_app_context(), purchase_verifier=StaticVerifier())):
            response = api_client.post("/api/verify-purchase", {"qrCode": "PRODUCT_123"}, format="json")

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Purchase verified."
        assert body["data"]["productId"] == "PRODUCT_123"

    def test_unverified_purchase(self, api_client):
        with override_app_context(replace(get_app_context(), purchase_verifier=StaticVerifier(verified=False))):
            response = api_client.post("/api/verify-purchase", {"qrCode": "PRODUCT_123"}, format="json")

        assert response.json()["data"]["verified"] is False

    def test_bad_format(self, api_client):
        response = api_client.post("/api/verify-purchase", {"qrCode": "ORDER_123"}, format="json")

        assert response.status_code == 400

    def test_disabled(self, api_client):
        context = get_app_context()
        with override_app_context(replace(context, flags={**context.flags, "ENABLE_QR_VERIFICATION": False})):
            response = api_client.post("/api/verify-purchase", {"qrCode": "PRODUCT_123"}, format="json")

        assert response.status_code == 404

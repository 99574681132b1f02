import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from users.models import User
from utils import errors
from utils.review_search import apply_full_text_search

from .filters import ReviewFilters
from .models import HelpfulVote, Review, ReviewImage, ReviewReport

logger = logging.getLogger("rest_framework")

CREATE_FIELDS = ("product_name", "category", "title", "content", "rating", "user_agent", "ip_address")
EDITABLE_FIELDS = ("product_name", "category", "title", "content", "rating")
# a change to any of these resets moderation and re-runs enrichment
CONTENT_FIELDS = ("title", "content", "rating")

ENRICHMENT_FIELDS = frozenset({
    "sentiment", "sentiment_score", "summary", "keywords", "is_fake", "fake_confidence",
    "ai_provider", "blockchain_hash", "blockchain_verified", "content_address", "enriched_at",
})

REPUTATION_DELTAS = {
    Review.Status.APPROVED: 10,
    Review.Status.REJECTED: -5,
}
HELPFUL_REPUTATION = 2


def can_moderate(user):
    return bool(user is not None and getattr(user, "is_authenticated", False) and user.is_admin)


def _clean_text(data):
    return {key: value.strip() if isinstance(value, str) else value for key, value in data.items()}


class ReviewStore:
    """
    Review persistence: CRUD, moderation transitions and the helpful/report
    counters. Counter and reputation changes are single UPDATE statements with
    F() expressions, guarded by unique membership rows.

    `on_content_change(review_id)` is called whenever a review needs
    (re-)enrichment; it is injected so the store never imports the task layer.
    """

    def __init__(self, on_content_change=None):
        self.on_content_change = on_content_change

    def _schedule(self, review_id):
        if self.on_content_change is not None:
            self.on_content_change(review_id)

    @staticmethod
    def _validate(fields):
        rating = fields.get("rating")
        if rating is not None and (not isinstance(rating, int) or not 1 <= rating <= 5):
            raise errors.ValidationError("Rating must be an integer between 1 and 5.")
        category = fields.get("category")
        if category is not None and category not in Review.Category.values:
            raise errors.ValidationError(f"Invalid category: {category}.")
        content = fields.get("content")
        if content is not None and not 10 <= len(content) <= 2000:
            raise errors.ValidationError("Content must be between 10 and 2000 characters.")
        for name in ("title", "product_name"):
            value = fields.get(name)
            if value is not None and not 1 <= len(value) <= 200:
                raise errors.ValidationError(f"{name} must be between 1 and 200 characters.")

    # reads

    def get(self, review_id) -> Review:
        try:
            return Review.objects.select_related("author").get(pk=review_id)
        except (Review.DoesNotExist, DjangoValidationError, ValueError):
            raise errors.NotFoundError("Review not found.")

    def ensure_visible(self, review, viewer):
        if review.status == Review.Status.APPROVED or can_moderate(viewer):
            return
        if viewer is not None and getattr(viewer, "pk", None) == review.author_id:
            return
        raise errors.NotFoundError("Review not found.")

    def retrieve_for_view(self, review_id, viewer=None) -> Review:
        review = self.get(review_id)
        self.ensure_visible(review, viewer)
        Review.objects.filter(pk=review.pk).update(views=F("views") + 1)
        review.refresh_from_db(fields=["views"])
        return review

    def list_by_filter(self, filters: ReviewFilters):
        queryset = Review.objects.select_related("author").prefetch_related("images")
        if filters.status:
            queryset = queryset.filter(status=filters.status)
        if filters.category:
            queryset = queryset.filter(category=filters.category)
        if filters.sentiment:
            queryset = queryset.filter(sentiment=filters.sentiment)
        if filters.rating:
            queryset = queryset.filter(rating=filters.rating)
        if filters.author_id:
            queryset = queryset.filter(author_id=filters.author_id)

        ordering = filters.ordering()
        if filters.search:
            queryset = apply_full_text_search(queryset, filters.search)
        elif filters.sort == "relevance":
            ordering = ("-created_at", "id")

        total = queryset.count()
        items = list(queryset.order_by(*ordering)[filters.offset:filters.offset + filters.limit])
        return items, total

    # writes

    def create(self, author, data, verification=None) -> Review:
        fields = _clean_text({key: data[key] for key in CREATE_FIELDS if key in data})
        self._validate(fields)

        if Review.objects.filter(author=author, product_name=fields.get("product_name")).exists():
            raise errors.ConflictError("You have already reviewed this product.")

        if verification is not None:
            fields["is_verified"] = bool(verification.verified)
            fields["qr_code"] = verification.product_id
            fields["purchase_data"] = verification.as_dict()

        try:
            with transaction.atomic():
                review = Review.objects.create(author=author, **fields)
        except IntegrityError as exc:
            raise errors.ConflictError("You have already reviewed this product.") from exc

        logger.info(f"Review {review.pk} created by {author.email}")
        self._schedule(review.pk)
        return review

    def update(self, review_id, actor, data) -> Review:
        review = self.get(review_id)
        is_admin = can_moderate(actor)
        if not is_admin and review.author_id != actor.pk:
            raise errors.AuthorizationError("Only the author or an admin can edit this review.")
        if not is_admin and review.status != Review.Status.PENDING:
            raise errors.ValidationError("Reviews cannot be edited after moderation.")

        changes = _clean_text({key: data[key] for key in EDITABLE_FIELDS if key in data})
        self._validate(changes)
        content_changed = any(
            key in changes and changes[key] != getattr(review, key) for key in CONTENT_FIELDS
        )

        for key, value in changes.items():
            setattr(review, key, value)
        update_fields = list(changes) + ["updated_at"]

        if content_changed:
            review.status = Review.Status.PENDING
            review.moderated_by = None
            review.moderated_at = None
            review.moderation_notes = ""
            review.blockchain_hash = ""
            review.blockchain_verified = False
            update_fields += [
                "status", "moderated_by", "moderated_at", "moderation_notes",
                "blockchain_hash", "blockchain_verified",
            ]

        try:
            with transaction.atomic():
                review.save(update_fields=update_fields)
        except IntegrityError as exc:
            raise errors.ConflictError("You have already reviewed this product.") from exc

        if content_changed:
            self._schedule(review.pk)
        return review

    def delete(self, review_id, actor):
        review = self.get(review_id)
        if not can_moderate(actor) and review.author_id != actor.pk:
            raise errors.AuthorizationError("Only the author or an admin can delete this review.")
        review.delete()
        logger.info(f"Review {review_id} deleted by {actor.email}")

    def set_status(self, review_id, status, moderator, notes="") -> Review:
        """
        Moves a review to approved/rejected. The reputation delta is applied
        only when the stored status actually changes, so repeating the same
        decision never credits or debits the author twice.
        """
        if status not in REPUTATION_DELTAS:
            raise errors.ValidationError("Status must be 'approved' or 'rejected'.")
        review = self.get(review_id)
        moderation = {
            "moderated_by": moderator,
            "moderated_at": timezone.now(),
            "moderation_notes": (notes or "").strip(),
        }

        with transaction.atomic():
            changed = (
                Review.objects.filter(pk=review.pk)
                .exclude(status=status)
                .update(status=status, **moderation)
            )
            if changed:
                User.adjust_reputation(review.author_id, REPUTATION_DELTAS[status])
            else:
                Review.objects.filter(pk=review.pk).update(**moderation)

        if changed:
            logger.info(f"Review {review.pk} moved to {status} by {getattr(moderator, 'email', 'system')}")
        review.refresh_from_db()
        review.status_changed = bool(changed)
        return review

    def mark_helpful(self, review_id, user) -> int:
        review = self.get(review_id)
        self.ensure_visible(review, user)
        if review.author_id == user.pk:
            raise errors.ValidationError("You cannot mark your own review as helpful.")

        try:
            with transaction.atomic():
                HelpfulVote.objects.create(review=review, user=user)
                Review.objects.filter(pk=review.pk).update(helpful=F("helpful") + 1)
                User.adjust_reputation(review.author_id, HELPFUL_REPUTATION, helpful_votes=1)
        except IntegrityError as exc:
            raise errors.ConflictError("You have already marked this review as helpful.") from exc

        return Review.objects.values_list("helpful", flat=True).get(pk=review.pk)

    def report(self, review_id, user, reason) -> int:
        reason = (reason or "").strip()
        if not 1 <= len(reason) <= 500:
            raise errors.ValidationError("Report reason must be between 1 and 500 characters.")
        review = self.get(review_id)
        self.ensure_visible(review, user)

        try:
            with transaction.atomic():
                ReviewReport.objects.create(review=review, user=user, reason=reason)
                Review.objects.filter(pk=review.pk).update(report_count=F("report_count") + 1)
        except IntegrityError as exc:
            raise errors.ConflictError("You have already reported this review.") from exc

        logger.info(f"Review {review.pk} reported by {user.email}")
        return Review.objects.values_list("report_count", flat=True).get(pk=review.pk)

    def apply_enrichment(self, review_id, fields) -> Review:
        """Writes analysis results. Touches only enrichment fields, never moderation ones."""
        unknown = set(fields) - ENRICHMENT_FIELDS
        if unknown:
            raise ValueError(f"Not enrichment fields: {sorted(unknown)}")
        if not Review.objects.filter(pk=review_id).update(**fields):
            raise errors.NotFoundError("Review not found.")
        return self.get(review_id)

    def add_image(self, review_id, actor, upload, filename, max_images) -> ReviewImage:
        review = self.get(review_id)
        if not can_moderate(actor) and review.author_id != actor.pk:
            raise errors.AuthorizationError("Only the author can attach images to this review.")
        if review.images.count() >= max_images:
            raise errors.ValidationError(f"A review can have at most {max_images} images.")
        image = ReviewImage.objects.create(
            review=review,
            image=upload,
            filename=filename[:255],
            size=upload.size,
        )
        logger.info(f"Image {image.pk} attached to review {review.pk}")
        return image

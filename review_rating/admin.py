from django.contrib import admin, messages

from core.context import get_app_context
from utils import errors

from .models import HelpfulVote, Review, ReviewImage, ReviewReport


class ReviewImageInline(admin.TabularInline):
    model = ReviewImage
    extra = 0
    readonly_fields = ("filename", "size", "created_at")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = (
        "title", "product_name", "author", "rating", "status", "sentiment",
        "is_fake", "is_verified", "helpful", "report_count", "created_at",
    )
    list_filter = ("status", "category", "sentiment", "is_fake", "is_verified", "ai_provider")
    search_fields = ("title", "content", "product_name", "author__email")
    readonly_fields = (
        "id", "sentiment", "sentiment_score", "summary", "keywords", "is_fake", "fake_confidence",
        "ai_provider", "blockchain_hash", "blockchain_verified", "content_address", "enriched_at",
        "helpful", "report_count", "views", "moderated_by", "moderated_at", "created_at", "updated_at",
    )
    inlines = [ReviewImageInline]
    actions = ["approve_reviews", "reject_reviews"]

    def _moderate(self, request, queryset, status):
        # through the store so reputation follows the same transition rules as the API
        store = get_app_context().store
        changed = 0
        for review in queryset:
            try:
                if store.set_status(review.pk, status, request.user).status_changed:
                    changed += 1
            except errors.FeedbackError as e:
                self.message_user(request, f"{review.title}: {e.message}", messages.ERROR)
        self.message_user(request, f"{changed} review(s) marked as {status}.")

    @admin.action(description="Approve selected reviews")
    def approve_reviews(self, request, queryset):
        self._moderate(request, queryset, Review.Status.APPROVED)

    @admin.action(description="Reject selected reviews")
    def reject_reviews(self, request, queryset):
        self._moderate(request, queryset, Review.Status.REJECTED)


@admin.register(ReviewReport)
class ReviewReportAdmin(admin.ModelAdmin):
    list_display = ("review", "user", "reason", "created_at")
    search_fields = ("reason", "user__email", "review__title")


@admin.register(HelpfulVote)
class HelpfulVoteAdmin(admin.ModelAdmin):
    list_display = ("review", "user", "created_at")

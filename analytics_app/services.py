import datetime

from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from review_rating.models import Review
from users.models import User

TIME_RANGES = {
    "7d": datetime.timedelta(days=7),
    "30d": datetime.timedelta(days=30),
    "90d": datetime.timedelta(days=90),
    "1y": datetime.timedelta(days=365),
}
DEFAULT_TIME_RANGE = "30d"


def _percentage(part, whole):
    return round(part / whole * 100, 1) if whole else 0


class ReviewAnalytics:
    """
    Aggregates over the review table. Moderation counters cover every review
    created in the window; sentiment, category and rating breakdowns only
    count approved reviews.
    """

    TOP_CATEGORIES = 10
    RECENT_ACTIVITY = 5

    def __init__(self, time_range=DEFAULT_TIME_RANGE, now=None):
        self.time_range = time_range if time_range in TIME_RANGES else DEFAULT_TIME_RANGE
        self.now = now or timezone.now()
        self.start = self.now - TIME_RANGES[self.time_range]

    def _window(self):
        return Review.objects.filter(created_at__gte=self.start)

    def _approved(self):
        return self._window().filter(status=Review.Status.APPROVED)

    def review_stats(self):
        stats = self._window().aggregate(
            total=Count("id"),
            approved=Count("id", filter=Q(status=Review.Status.APPROVED)),
            pending=Count("id", filter=Q(status=Review.Status.PENDING)),
            rejected=Count("id", filter=Q(status=Review.Status.REJECTED)),
            verified=Count("id", filter=Q(is_verified=True)),
            fake=Count("id", filter=Q(is_fake=True)),
            avgRating=Avg("rating"),
            totalViews=Sum("views"),
            totalHelpful=Sum("helpful"),
            totalReports=Sum("report_count"),
        )
        stats["avgRating"] = round(stats["avgRating"] or 0, 2)
        for key in ("totalViews", "totalHelpful", "totalReports"):
            stats[key] = stats[key] or 0
        return stats

    def user_stats(self):
        return User.objects.filter(created_at__gte=self.start).aggregate(
            total=Count("id"),
            active=Count("id", filter=Q(is_active=True)),
        )

    def sentiment_stats(self):
        counts = dict(
            self._approved().order_by().values("sentiment").annotate(count=Count("id")).values_list("sentiment", "count")
        )
        total = sum(counts.values())
        stats = {}
        for sentiment in Review.Sentiment.values:
            count = counts.get(sentiment, 0)
            stats[sentiment] = count
            stats[f"{sentiment}Percentage"] = _percentage(count, total)
        return stats

    def category_stats(self):
        rows = (
            self._approved()
            .values("category")
            .annotate(count=Count("id"), avg_rating=Avg("rating"))
            .order_by("-count", "category")[:self.TOP_CATEGORIES]
        )
        return [
            {"category": row["category"], "count": row["count"], "avgRating": round(row["avg_rating"] or 0, 1)}
            for row in rows
        ]

    def rating_distribution(self):
        counts = dict(
            self._approved().order_by().values("rating").annotate(count=Count("id")).values_list("rating", "count")
        )
        return {str(rating): counts.get(rating, 0) for rating in range(1, 6)}

    def ai_usage(self):
        return dict(
            self._window()
            .exclude(ai_provider="")
            .order_by()
            .values("ai_provider")
            .annotate(count=Count("id"))
            .values_list("ai_provider", "count")
        )

    def summary(self):
        return {
            "timeRange": self.time_range,
            "reviews": self.review_stats(),
            "users": self.user_stats(),
            "sentiment": self.sentiment_stats(),
            "categories": self.category_stats(),
            "ratings": {"distribution": self.rating_distribution()},
            "ai": self.ai_usage(),
        }

    @staticmethod
    def dashboard_counts(now=None):
        now = now or timezone.now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return {
            "totalReviews": Review.objects.count(),
            "totalUsers": User.objects.count(),
            "pendingReviews": Review.objects.filter(status=Review.Status.PENDING).count(),
            "todayReviews": Review.objects.filter(created_at__gte=start_of_day).count(),
        }

    @classmethod
    def recent_activity(cls):
        return Review.objects.select_related("author").order_by("-created_at")[:cls.RECENT_ACTIVITY]

    @staticmethod
    def for_review(review):
        engagement = round(review.helpful / review.views * 100, 2) if review.views else 0
        return {
            "views": review.views,
            "helpful": review.helpful,
            "reports": review.report_count,
            "engagement": engagement,
        }

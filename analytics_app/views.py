from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.views import APIView

from review_rating.serializers import ReviewSerializer
from users.permissions import IsAdminRole
from utils.responses import success_response

from .analytics_cache import get_cached_summary
from .services import TIME_RANGES, ReviewAnalytics


@extend_schema(
    tags=['Analytics'],
    parameters=[
        OpenApiParameter('timeRange', OpenApiTypes.STR, enum=list(TIME_RANGES), description="Defaults to 30d."),
    ],
    summary="Aggregate review, user, sentiment, category and rating statistics",
)
class AnalyticsView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = None

    def get(self, request):
        return success_response(get_cached_summary(request.query_params.get("timeRange")))


@extend_schema(tags=['Analytics'], summary="Current totals and the latest reviews")
class DashboardStatsView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = None

    def get(self, request):
        stats = ReviewAnalytics.dashboard_counts()
        stats["recentActivity"] = ReviewSerializer(ReviewAnalytics.recent_activity(), many=True).data
        return success_response(stats)


@extend_schema(tags=['Analytics'], summary="Engagement of a single review")
class ReviewStatsView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = None

    def get(self, request, review_id):
        review = request.app_context.store.get(review_id)
        return success_response(ReviewAnalytics.for_review(review))

from django.urls import path
from .views import (
    ReviewDetailAPIView,
    ReviewHelpfulAPIView,
    ReviewImageUploadAPIView,
    ReviewListCreateAPIView,
    ReviewReportAPIView,
    ReviewStatusAPIView,
    ReviewVerifyHashAPIView,
)

urlpatterns = [
    path('', ReviewListCreateAPIView.as_view(), name='review-list-create'),
    path('<uuid:review_id>', ReviewDetailAPIView.as_view(), name='review-detail'),
    path('<uuid:review_id>/status', ReviewStatusAPIView.as_view(), name='review-status'),
    path('<uuid:review_id>/helpful', ReviewHelpfulAPIView.as_view(), name='review-helpful'),
    path('<uuid:review_id>/report', ReviewReportAPIView.as_view(), name='review-report'),
    path('<uuid:review_id>/verify-hash', ReviewVerifyHashAPIView.as_view(), name='review-verify-hash'),
    path('<uuid:review_id>/images', ReviewImageUploadAPIView.as_view(), name='review-images'),
]

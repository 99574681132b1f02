from django.urls import path
from .views import AnalyticsView, DashboardStatsView, ReviewStatsView

urlpatterns = [
    path('', AnalyticsView.as_view(), name='analytics'),
    path('dashboard', DashboardStatsView.as_view(), name='analytics-dashboard'),
    path('reviews/<uuid:review_id>', ReviewStatsView.as_view(), name='analytics-review'),
]

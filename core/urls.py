from django.contrib import admin
from django.urls import path, re_path, include
from django.conf import settings

from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

from analytics_app.views import AnalyticsView
from notification_app.views import NotificationListView
from review_rating.views import ReviewListCreateAPIView, VerifyPurchaseAPIView
from users.views import UserListView
from .views import HealthCheckView

urlpatterns = [
    path('admin/', admin.site.urls),

    # collection roots answer with or without the trailing slash
    re_path(r'^api/reviews$', ReviewListCreateAPIView.as_view()),
    re_path(r'^api/users$', UserListView.as_view()),
    re_path(r'^api/analytics$', AnalyticsView.as_view()),
    re_path(r'^api/notifications$', NotificationListView.as_view()),

    # authentication and user management
    path('api/auth/', include('users.urls')),
    path('api/users/', include('users.admin_urls')),

    # reviews
    path('api/reviews/', include('review_rating.urls')),
    path('api/verify-purchase', VerifyPurchaseAPIView.as_view(), name='verify-purchase'),

    path('api/analytics/', include('analytics_app.urls')),
    path('api/notifications/', include('notification_app.urls')),

    path('api/health', HealthCheckView.as_view(), name='health'),

    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

if settings.DEBUG and "debug_toolbar" in settings.INSTALLED_APPS:
    import debug_toolbar
    urlpatterns += [path("__debug__/", include(debug_toolbar.urls))]

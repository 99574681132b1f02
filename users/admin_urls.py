from django.urls import path
from .views import UserDeactivateView, UserDetailView, UserListView, UserRoleView

urlpatterns = [
    path('', UserListView.as_view(), name='user-list'),
    path('<uuid:user_id>', UserDetailView.as_view(), name='user-detail'),
    path('<uuid:user_id>/role', UserRoleView.as_view(), name='user-role'),
    path('<uuid:user_id>/deactivate', UserDeactivateView.as_view(), name='user-deactivate'),
]

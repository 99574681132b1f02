from django.urls import path
from .views import (
    LoginUser,
    LogoutUser,
    PasswordResetConfirmView,
    PasswordResetRequestView,
    RefreshAccessTokenView,
    RegisterView,
    VerifyTokenView,
)

urlpatterns = [
    path('register', RegisterView.as_view(), name='register'),
    path('login', LoginUser.as_view(), name='login'),
    path('verify', VerifyTokenView.as_view(), name='verify'),
    path('logout', LogoutUser.as_view(), name='logout'),
    path('token/refresh', RefreshAccessTokenView.as_view(), name='token-refresh'),

    path('password-reset', PasswordResetRequestView.as_view(), name='password-reset'),
    path('password-reset/confirm', PasswordResetConfirmView.as_view(), name='password-reset-confirm'),
]

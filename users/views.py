import logging

from django.contrib.auth.models import update_last_login
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from utils import errors, set_jwt_token
from utils.pagination import EnvelopePagination
from utils.responses import success_response

from .filters import UserFilter
from .models import User
from .permissions import IsAdminRole, IsSelfOrAdmin
from .serializers import (
    LoginUserSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetRequestSerializer,
    RefreshTokenSerializer,
    RegisterSerializer,
    UserRoleSerializer,
    UserSerializer,
)
from .throttles import LoginRateThrottle, PasswordResetRateThrottle

logger = logging.getLogger("rest_framework")


def _unauthorized():
    return Response(
        {"success": False, "message": "Invalid or expired token. Please log in again."},
        status=status.HTTP_401_UNAUTHORIZED,
    )


def _session_response(user, message, status_code=status.HTTP_200_OK):
    access_token, refresh_token = set_jwt_token.generate_tokens_for_user(user)
    response = success_response(
        {"user": UserSerializer(user).data, "token": access_token},
        message=message,
        status_code=status_code,
    )
    set_jwt_token.set_secure_jwt_cookie(response, access_token, refresh_token)
    return response


class RegisterView(APIView):
    """
    RegisterView

    Creates an account through the active auth provider and starts a session.

    **Request Body Parameters:**
      - **email (str)**
      - **password (str):** at least 8 characters.
      - **name (str)**

    **Responses:**
      - **201 Created:** `{user, token}`; JWT cookies are set as well.
      - **400 Bad Request:** validation errors or an already registered email.
    """

    permission_classes = [AllowAny]
    serializer_class = RegisterSerializer

    def post(self, request):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.app_context.auth_provider.register(**serializer.validated_data)
        return _session_response(user, "User registered successfully.", status.HTTP_201_CREATED)


class LoginUser(APIView):
    """
    LoginUser

    Authenticates with email and password against the active auth provider.

    **Responses:**
      - **200 OK:** `{user, token}`; JWT cookies are set as well.
      - **401 Unauthorized:** invalid credentials.
    """

    permission_classes = [AllowAny]
    serializer_class = LoginUserSerializer
    throttle_classes = [LoginRateThrottle]

    def post(self, request):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.app_context.auth_provider.login(**serializer.validated_data)

        update_last_login(None, user)
        logger.info(f"User {user.email} logged in successfully.")
        return _session_response(user, "Login successful.")


class VerifyTokenView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(responses=UserSerializer, summary="Return the user behind the current token")
    def get(self, request):
        return success_response({"user": UserSerializer(request.user).data})


class LogoutUser(APIView):
    """
    LogoutUser

    Blacklists the refresh token (cookie or `refreshToken` in the body) and
    removes the JWT cookies. Always succeeds, even with an expired session.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RefreshTokenSerializer

    def post(self, request):
        refresh_token = request.COOKIES.get("refresh_token") or request.data.get("refreshToken")
        if refresh_token:
            try:
                token = RefreshToken(refresh_token)
                token.blacklist()  # Blacklist the token to invalidate it
            except TokenError as e:
                logger.warning(f"Logout with an unusable refresh token: {e}")
            else:
                user = User.objects.filter(pk=token.get("user_id")).first()
                if user is not None:
                    request.app_context.auth_provider.logout(user)

        response = success_response(message="Logout successful.")
        set_jwt_token.clear_jwt_cookies(response)
        return response


class RefreshAccessTokenView(APIView):
    """
    RefreshAccessTokenView

    Rotates the refresh token (cookie or `refreshToken` in the body) and
    issues a new access token. The used refresh token is blacklisted.

    **Responses:**
      - **200 OK:** `{token}`; cookies are updated.
      - **401 Unauthorized:** missing, invalid or expired refresh token.
    """

    permission_classes = [AllowAny]
    # an expired access cookie must not block the refresh itself
    authentication_classes = []
    serializer_class = RefreshTokenSerializer

    def post(self, request):
        refresh_token = request.COOKIES.get("refresh_token") or request.data.get("refreshToken")
        if not refresh_token:
            logger.info("Refresh token not provided.")
            return _unauthorized()

        serializer = TokenRefreshSerializer(data={"refresh": refresh_token})
        try:
            serializer.is_valid(raise_exception=True)
        except (TokenError, AuthenticationFailed) as e:
            logger.info(f"Invalid or expired refresh token: {e}")
            return _unauthorized()

        access_token = serializer.validated_data["access"]
        new_refresh_token = serializer.validated_data.get("refresh", refresh_token)

        response = success_response({"token": access_token}, message="Access token refreshed.")
        set_jwt_token.set_secure_jwt_cookie(response, access_token, new_refresh_token)
        return response


class PasswordResetRequestView(APIView):
    """
    PasswordResetRequestView

    Delegates the reset to the active auth provider. The answer is the same
    whether or not the email belongs to an account.
    """

    permission_classes = [AllowAny]
    serializer_class = PasswordResetRequestSerializer
    throttle_classes = [PasswordResetRateThrottle]

    def post(self, request):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email']
        try:
            request.app_context.auth_provider.reset_password(email)
        except errors.FeedbackError as e:
            logger.warning(f"Password reset for {email} failed: {e.message}")
        return success_response(message="If the email exists in our system, a password reset email has been sent.")


class PasswordResetConfirmView(APIView):
    permission_classes = [AllowAny]
    serializer_class = PasswordResetConfirmSerializer

    def post(self, request):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"Password reset completed for {user.email}")
        return success_response(message="Password has been reset successfully.")


class UserListView(generics.ListAPIView):
    """GET /api/users?page=&limit=&search=&role=&is_active= (admin)."""

    serializer_class = UserSerializer
    permission_classes = [IsAdminRole]
    pagination_class = EnvelopePagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = UserFilter
    queryset = User.objects.order_by("-created_at", "id")


class UserDetailView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsSelfOrAdmin]
    queryset = User.objects.all()
    lookup_url_kwarg = "user_id"

    def retrieve(self, request, *args, **kwargs):
        return success_response({"user": self.get_serializer(self.get_object()).data})


class UserRoleView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = UserRoleSerializer

    def patch(self, request, user_id):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = _get_user(user_id)
        if user.pk == request.user.pk:
            raise errors.ValidationError("You cannot change your own role.")

        user.role = serializer.validated_data["role"]
        user.save(update_fields=["role"])
        logger.info(f"{request.user.email} set role of {user.email} to {user.role}")
        return success_response({"user": UserSerializer(user).data}, message="Role updated.")


class UserDeactivateView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = None

    def patch(self, request, user_id):
        user = _get_user(user_id)
        if user.pk == request.user.pk:
            raise errors.ValidationError("You cannot deactivate your own account.")

        user.is_active = False
        user.save(update_fields=["is_active"])
        logger.info(f"{request.user.email} deactivated {user.email}")
        return success_response({"user": UserSerializer(user).data}, message="User deactivated.")


def _get_user(user_id):
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise errors.NotFoundError("User not found.")
    return user

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework_simplejwt.exceptions import AuthenticationFailed, TokenError
from rest_framework_simplejwt.tokens import AccessToken

from .models import User

logger = logging.getLogger("rest_framework")

TOKEN_EXPIRED = {"code": "token_expired", "message": "Access token expired. Please refresh your session."}
INVALID_TOKEN = {"code": "invalid_token", "message": "Invalid or expired token. Please log in again."}


def token_from_request(request):
    """Bearer header first, then the HTTP-only `access_token` cookie."""
    header = get_authorization_header(request).split()
    if len(header) == 2 and header[0].lower() == b"bearer":
        return header[1].decode("utf-8")
    return request.COOKIES.get("access_token")


def user_for_token(raw_token):
    try:
        token = AccessToken(raw_token)
    except TokenError:
        logger.debug("Access token expired or malformed.")
        raise AuthenticationFailed(detail=TOKEN_EXPIRED)

    user_id = token.get("user_id")
    if not user_id:
        raise AuthenticationFailed(detail=TOKEN_EXPIRED)

    try:
        user = User.objects.get(id=user_id)
    except (ObjectDoesNotExist, DjangoValidationError):
        raise AuthenticationFailed(detail=INVALID_TOKEN)

    if not user.is_active:
        raise AuthenticationFailed(detail={"code": "user_inactive", "message": "Account is deactivated."})
    return user


class JWTAuthentication(BaseAuthentication):
    """
    JWT from the `Authorization: Bearer` header or the HTTP-only cookie.

    Requests without a token stay anonymous so public endpoints keep working;
    a token that is present but invalid is rejected.
    """

    def authenticate(self, request):
        raw_token = token_from_request(request)
        if not raw_token:
            return None
        return user_for_token(raw_token), raw_token

    def authenticate_header(self, request):
        return 'Bearer realm="api"'


class JWTAuthMixin:
    """
    Channels mixin resolving the connecting user from the `access_token`
    cookie or a `token` query parameter. Returns None for anonymous sockets.
    """

    def _token_from_scope(self):
        query = parse_qs(self.scope.get("query_string", b"").decode("utf-8"))
        if query.get("token"):
            return query["token"][0]

        headers = dict(self.scope.get("headers", []))
        raw_cookie = headers.get(b"cookie", b"").decode("utf-8")
        cookies = {
            k: v for k, v in (
                pair.split("=", 1)
                for pair in raw_cookie.split("; ")
                if "=" in pair
            )
        }
        return cookies.get("access_token")

    async def get_user_from_scope(self):
        raw_token = self._token_from_scope()
        if not raw_token:
            return None
        return await database_sync_to_async(user_for_token)(raw_token)

"""
Pluggable identity providers.

Exactly one provider is active per process, chosen from configuration at
startup: Firebase when FIREBASE_API_KEY is set, otherwise Auth0 when
AUTH0_DOMAIN is set, otherwise the local demo provider. AUTH_PROVIDER forces
a choice. External providers own the password; every successful login or
registration is mirrored into the local User table, and the API always
issues its own JWTs.
"""
import logging

import requests
from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.tokens import PasswordResetTokenGenerator
from django.core.mail import send_mail
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from utils import errors
from utils.http_client import request_json

from .models import User

logger = logging.getLogger("rest_framework")

INVALID_CREDENTIALS = "Invalid email or password."


def _role_for(email):
    return User.Role.ADMIN if email.lower() in settings.ADMIN_EMAILS else User.Role.USER


def mirror_user(email, name, provider, external_id=""):
    """Get-or-create the local account for an externally authenticated identity."""
    email = email.lower()
    user, created = User.objects.get_or_create(
        email=email,
        defaults={
            "name": name or email.split("@")[0],
            "auth_provider": provider,
            "external_id": external_id,
            "role": _role_for(email),
        },
    )
    if created:
        user.set_unusable_password()
        user.save(update_fields=["password"])
        logger.info(f"Mirrored {provider} account {email}")
    if not user.is_active:
        raise AuthenticationFailed("Account is deactivated.")
    return user


class AuthProvider:
    name = "base"

    def login(self, email, password) -> User:
        raise NotImplementedError

    def register(self, email, password, name) -> User:
        raise NotImplementedError

    def logout(self, user):
        logger.info(f"User {user.email} logged out via {self.name}")

    def reset_password(self, email):
        raise NotImplementedError

    def current_user(self, token) -> User:
        try:
            user_id = AccessToken(token).get("user_id")
        except TokenError:
            raise AuthenticationFailed("Invalid or expired token. Please log in again.")
        user = User.objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            raise AuthenticationFailed("Invalid or expired token. Please log in again.")
        return user


class DemoAuthProvider(AuthProvider):
    """Local accounts with Django password hashing."""

    name = "demo"

    def login(self, email, password):
        user = authenticate(email=email.lower(), password=password)
        if user is None:
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        return user

    def register(self, email, password, name):
        email = email.lower()
        if User.objects.filter(email=email).exists():
            raise errors.ConflictError("User already exists with this email.")
        user = User.objects.create_user(
            email=email,
            password=password,
            name=name,
            role=_role_for(email),
            auth_provider=User.Provider.DEMO,
        )
        logger.info(f"User {user.email} registered.")
        return user

    def reset_password(self, email):
        user = User.objects.filter(email=email.lower(), is_active=True).first()
        if user is None:
            # same outcome as success, so accounts cannot be enumerated
            return
        token = PasswordResetTokenGenerator().make_token(user)
        reset_url = f"{settings.FRONTEND_URL}/reset-password?email={user.email}&token={token}"
        send_mail(
            "Password Reset Request",
            (
                f"Hi {user.name},\n\n"
                f"Click the link below to reset your password:\n{reset_url}\n\n"
                "If you did not request this, please ignore this email."
            ),
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
        )


class FirebaseAuthProvider(AuthProvider):
    """Firebase Authentication through the Identity Toolkit REST API."""

    name = "firebase"
    BASE_URL = "https://identitytoolkit.googleapis.com/v1/accounts"

    def __init__(self, api_key, session=None):
        self.api_key = api_key
        self.session = session or requests.Session()

    def _call(self, action, payload):
        return request_json(
            "POST",
            f"{self.BASE_URL}:{action}",
            session=self.session,
            params={"key": self.api_key},
            json=payload,
        )

    def login(self, email, password):
        try:
            data = self._call("signInWithPassword", {"email": email, "password": password, "returnSecureToken": True})
        except (errors.ValidationError, errors.AuthorizationError, errors.NotFoundError, errors.ConflictError):
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        return mirror_user(data.get("email", email), data.get("displayName"), self.name, data.get("localId", ""))

    def register(self, email, password, name):
        try:
            data = self._call("signUp", {"email": email, "password": password, "displayName": name, "returnSecureToken": True})
        except (errors.ValidationError, errors.ConflictError) as exc:
            if "EMAIL_EXISTS" in exc.message:
                raise errors.ConflictError("User already exists with this email.")
            raise errors.ValidationError(exc.message)
        return mirror_user(data.get("email", email), name, self.name, data.get("localId", ""))

    def reset_password(self, email):
        try:
            self._call("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        except (errors.ValidationError, errors.NotFoundError) as exc:
            logger.info(f"Firebase password reset not sent for {email}: {exc.message}")


class Auth0AuthProvider(AuthProvider):
    """Auth0 database connection: password grant, signup and change-password endpoints."""

    name = "auth0"

    def __init__(self, domain, client_id, client_secret="", audience="", connection="Username-Password-Authentication", session=None):
        self.base_url = f"https://{domain.removeprefix('https://').rstrip('/')}"
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience
        self.connection = connection
        self.session = session or requests.Session()

    def login(self, email, password):
        payload = {
            "grant_type": "http://auth0.com/oauth/grant-type/password-realm",
            "realm": self.connection,
            "username": email,
            "password": password,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": "openid profile email",
        }
        if self.audience:
            payload["audience"] = self.audience
        try:
            tokens = request_json("POST", f"{self.base_url}/oauth/token", session=self.session, json=payload)
            profile = request_json(
                "GET", f"{self.base_url}/userinfo", session=self.session, token=tokens.get("access_token")
            )
        except (errors.ValidationError, errors.AuthorizationError, errors.NotFoundError, errors.ConflictError):
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        return mirror_user(profile.get("email", email), profile.get("name"), self.name, profile.get("sub", ""))

    def register(self, email, password, name):
        try:
            data = request_json(
                "POST",
                f"{self.base_url}/dbconnections/signup",
                session=self.session,
                json={
                    "client_id": self.client_id,
                    "email": email,
                    "password": password,
                    "connection": self.connection,
                    "name": name,
                },
            )
        except (errors.ValidationError, errors.ConflictError) as exc:
            if "exist" in exc.message.lower():
                raise errors.ConflictError("User already exists with this email.")
            raise errors.ValidationError(exc.message)
        return mirror_user(email, name, self.name, data.get("_id", ""))

    def reset_password(self, email):
        request_json(
            "POST",
            f"{self.base_url}/dbconnections/change_password",
            session=self.session,
            json={"client_id": self.client_id, "email": email, "connection": self.connection},
        )


def build_auth_provider():
    choice = (settings.AUTH_PROVIDER or "").lower()
    if not choice:
        if settings.FIREBASE_API_KEY:
            choice = "firebase"
        elif settings.AUTH0_DOMAIN:
            choice = "auth0"
        else:
            choice = "demo"

    if choice == "firebase":
        return FirebaseAuthProvider(settings.FIREBASE_API_KEY)
    if choice == "auth0":
        return Auth0AuthProvider(
            settings.AUTH0_DOMAIN,
            settings.AUTH0_CLIENT_ID,
            client_secret=settings.AUTH0_CLIENT_SECRET,
            audience=settings.AUTH0_AUDIENCE,
            connection=settings.AUTH0_CONNECTION,
        )
    return DemoAuthProvider()

"""
Shared fixtures and factory_boy factories.

Settings come from core.settings.test: SQLite in memory, locmem cache,
in-memory channel layer and eager Celery. Remote tiers (OpenAI,
HuggingFace, IPFS, secondary API) are unconfigured, so the heuristic
analyzer and the local content store answer.
"""
import json
from unittest.mock import MagicMock

import pytest
import factory
from factory.django import DjangoModelFactory
from django.core.cache import cache
from rest_framework.test import APIClient

from review_rating.models import Review
from users.models import User
from utils.set_jwt_token import generate_tokens_for_user

DEFAULT_PASSWORD = "Sunny-Orchard-42"


class UserFactory(DjangoModelFactory):
    class Meta:
        model = User
        django_get_or_create = ('email',)

    email = factory.Sequence(lambda n: f"reviewer{n}@example.com")
    name = factory.Faker('name')
    password = factory.PostGenerationMethodCall('set_password', DEFAULT_PASSWORD)
    is_active = True


class AdminFactory(UserFactory):
    email = factory.Sequence(lambda n: f"moderator{n}@example.com")
    role = User.Role.ADMIN


class ReviewFactory(DjangoModelFactory):
    class Meta:
        model = Review

    author = factory.SubFactory(UserFactory)
    product_name = factory.Sequence(lambda n: f"Product {n}")
    category = Review.Category.TECHNOLOGY
    title = "Solid everyday phone"
    content = "Battery life is great and the camera is excellent for the price point."
    rating = 4
    status = Review.Status.APPROVED


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def other_user(db):
    return UserFactory()


@pytest.fixture
def moderator(db):
    return AdminFactory()


@pytest.fixture
def client_for(db):
    """Returns an APIClient sending a Bearer access token for `user`."""

    def _client(user):
        client = APIClient()
        access_token, _ = generate_tokens_for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token}")
        return client

    return _client


@pytest.fixture
def review_payload():
    return {
        "productName": "Pixel Buds",
        "category": "Technology",
        "title": "Great sound",
        "content": "These earbuds sound great and the battery easily lasts a full day.",
        "rating": 5,
    }


def http_response(payload, status_code=200):
    """A stand-in for `requests.Response` as seen by utils.http_client."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = {}
    response.content = json.dumps(payload).encode()
    response.json.return_value = payload
    return response

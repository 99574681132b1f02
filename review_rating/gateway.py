"""
User-facing review operations served over fallback tiers:

    database -> secondary REST API (optional) -> local cache -> empty

Database and API tiers retry with 1s/2s/3s backoff. The local cache tier
serves the last good listing per filter set and queues submissions and
moderation decisions for replay once the database is back.
"""
import hashlib
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import List

from django.conf import settings
from django.core.cache import cache
from django.db import InterfaceError, OperationalError
from django.utils import timezone
from django_redis.exceptions import ConnectionInterrupted
from redis.exceptions import RedisError

from utils import errors
from utils.fallback import FallbackOrchestrator, RetryPolicy, Tier
from utils.http_client import request_json

from .serializers import ReviewSerializer

logger = logging.getLogger("rest_framework")

CACHE_VERSION = 1
SNAPSHOT_TTL = 24 * 60 * 60  # 24 hours
OFFLINE_QUEUE_KEY = f"reviews:v{CACHE_VERSION}:offline-queue"
OFFLINE_QUEUE_LIMIT = 500
OFFLINE_QUEUE_LOCK_KEY = f"{OFFLINE_QUEUE_KEY}:lock"
OFFLINE_QUEUE_LOCK_TTL = 10  # seconds; frees the queue if a holder dies
OFFLINE_QUEUE_LOCK_WAIT = 5  # seconds


def _snapshot_key(filters):
    token = hashlib.md5(filters.cache_token().encode("utf-8")).hexdigest()
    return f"reviews:v{CACHE_VERSION}:list:{token}"


@dataclass
class ReviewPage:
    reviews: List[dict] = field(default_factory=list)
    total: int = 0


def _public_payload(data, verification=None):
    payload = {
        "productName": data.get("product_name"),
        "category": data.get("category"),
        "title": data.get("title"),
        "content": data.get("content"),
        "rating": data.get("rating"),
    }
    if verification is not None:
        payload["qrCode"] = verification.product_id
    return payload


class DatabaseTier(Tier):
    name = "database"
    retry_policy = RetryPolicy()

    def __init__(self, store):
        self.store = store

    def _call(self, method, *args, **kwargs):
        try:
            return method(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            raise errors.UpstreamUnavailableError(f"Database unavailable: {exc}") from exc

    def load_reviews(self, filters):
        items, total = self._call(self.store.list_by_filter, filters)
        return ReviewPage(reviews=list(ReviewSerializer(items, many=True).data), total=total)

    def submit_review(self, author, data, verification=None):
        review = self._call(self.store.create, author, data, verification=verification)
        return dict(ReviewSerializer(review).data)

    def update_status(self, review_id, status, moderator, notes=""):
        review = self._call(self.store.set_status, review_id, status, moderator, notes)
        return {**ReviewSerializer(review).data, "statusChanged": review.status_changed}


class SecondaryApiTier(Tier):
    name = "secondary_api"
    retry_policy = RetryPolicy()

    def __init__(self, base_url, token=None, session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session

    def _request(self, method, path, **kwargs):
        payload = request_json(
            method, f"{self.base_url}{path}", session=self.session, token=self.token, **kwargs
        )
        return payload.get("data", payload) if isinstance(payload, dict) else payload

    def load_reviews(self, filters):
        params = {
            "status": filters.status,
            "category": filters.category,
            "sentiment": filters.sentiment,
            "rating": filters.rating,
            "userId": filters.author_id,
            "search": filters.search,
            "page": filters.page,
            "limit": filters.limit,
        }
        data = self._request("GET", "/reviews", params={k: v for k, v in params.items() if v is not None})
        reviews = data.get("reviews", [])
        return ReviewPage(reviews=reviews, total=data.get("pagination", {}).get("total", len(reviews)))

    def submit_review(self, author, data, verification=None):
        result = self._request("POST", "/reviews", json=_public_payload(data, verification))
        return result.get("review", result)

    def update_status(self, review_id, status, moderator, notes=""):
        result = self._request(
            "PATCH", f"/reviews/{review_id}/status", json={"status": status, "moderationNotes": notes}
        )
        return result.get("review", result)


class LocalCacheTier(Tier):
    name = "local_cache"

    @staticmethod
    def _guard(method, *args):
        try:
            return method(*args)
        except (ConnectionInterrupted, RedisError) as exc:
            raise errors.UpstreamUnavailableError(f"Local cache unavailable: {exc}") from exc

    def remember(self, filters, page):
        try:
            cache.set(_snapshot_key(filters), asdict(page), SNAPSHOT_TTL)
        except (ConnectionInterrupted, RedisError) as exc:
            logger.warning(f"Could not store review snapshot: {exc}")

    def load_reviews(self, filters):
        snapshot = self._guard(cache.get, _snapshot_key(filters))
        if snapshot is None:
            raise errors.UpstreamUnavailableError("No cached reviews for this query.")
        return ReviewPage(**snapshot)

    @classmethod
    @contextmanager
    def _queue_lock(cls):
        # cache.add is atomic (SET NX on redis), so only one holder edits the queue
        token = uuid.uuid4().hex
        deadline = time.monotonic() + OFFLINE_QUEUE_LOCK_WAIT
        while not cls._guard(cache.add, OFFLINE_QUEUE_LOCK_KEY, token, OFFLINE_QUEUE_LOCK_TTL):
            if time.monotonic() >= deadline:
                raise errors.UpstreamUnavailableError("Offline queue is busy.")
            time.sleep(0.05)
        try:
            yield
        finally:
            if cls._guard(cache.get, OFFLINE_QUEUE_LOCK_KEY) == token:
                cls._guard(cache.delete, OFFLINE_QUEUE_LOCK_KEY)

    @classmethod
    def enqueue(cls, *entries):
        with cls._queue_lock():
            queue = cls._guard(cache.get, OFFLINE_QUEUE_KEY) or []
            queue.extend(entries)
            cls._guard(cache.set, OFFLINE_QUEUE_KEY, queue[-OFFLINE_QUEUE_LIMIT:], None)

    @classmethod
    def requeue(cls, entries):
        """Puts entries back in front of anything queued since they were drained."""
        with cls._queue_lock():
            queue = list(entries) + (cls._guard(cache.get, OFFLINE_QUEUE_KEY) or [])
            cls._guard(cache.set, OFFLINE_QUEUE_KEY, queue[-OFFLINE_QUEUE_LIMIT:], None)

    @classmethod
    def drain(cls):
        with cls._queue_lock():
            queue = cls._guard(cache.get, OFFLINE_QUEUE_KEY) or []
            cls._guard(cache.delete, OFFLINE_QUEUE_KEY)
        return queue

    def submit_review(self, author, data, verification=None):
        self.enqueue({
            "op": "submit",
            "author_id": str(author.pk),
            "data": dict(data),
            "verification": verification.as_dict() if verification is not None else None,
            "queued_at": timezone.now().isoformat(),
        })
        return {**_public_payload(data, verification), "id": None, "status": "queued"}

    def update_status(self, review_id, status, moderator, notes=""):
        self.enqueue({
            "op": "status",
            "review_id": str(review_id),
            "status": status,
            "moderator_id": str(moderator.pk) if moderator is not None else None,
            "notes": notes,
            "queued_at": timezone.now().isoformat(),
        })
        return {"id": str(review_id), "status": "queued", "requestedStatus": status}


class EmptyTier(Tier):
    """Last resort for reads: an empty page instead of an error."""

    name = "empty"

    def load_reviews(self, filters):
        return ReviewPage()


class ReviewGateway:
    def __init__(self, tiers, notifier=None, sleep=time.sleep):
        self.tiers = list(tiers)
        self.cache_tier = next((tier for tier in self.tiers if isinstance(tier, LocalCacheTier)), None)
        self.orchestrator = FallbackOrchestrator(
            self.tiers,
            on_degraded=notifier.degraded if notifier is not None else None,
            sleep=sleep,
        )

    @classmethod
    def build(cls, store, notifier=None, token=None, sleep=time.sleep):
        tiers = [DatabaseTier(store)]
        if settings.SECONDARY_API_URL:
            tiers.append(SecondaryApiTier(settings.SECONDARY_API_URL, token=token))
        tiers += [LocalCacheTier(), EmptyTier()]
        return cls(tiers, notifier=notifier, sleep=sleep)

    def load_reviews(self, filters):
        result = self.orchestrator.run("load_reviews", filters=filters)
        if result.tier == DatabaseTier.name and self.cache_tier is not None:
            self.cache_tier.remember(filters, result.value)
        return result

    def submit_review(self, author, data, verification=None):
        return self.orchestrator.run("submit_review", author=author, data=data, verification=verification)

    def update_status(self, review_id, status, moderator, notes=""):
        return self.orchestrator.run(
            "update_status", review_id=review_id, status=status, moderator=moderator, notes=notes
        )

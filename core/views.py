import logging
import time

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.utils import timezone
from django_redis.exceptions import ConnectionInterrupted
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from redis.exceptions import RedisError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView

from utils.responses import success_response

logger = logging.getLogger("rest_framework")

STARTED_AT = time.monotonic()
HEALTH_CACHE_KEY = "health:probe"


def check_database():
    try:
        connection.ensure_connection()
    except DatabaseError as exc:
        logger.error(f"Health check: database unavailable: {exc}")
        return False
    return True


def check_cache():
    try:
        cache.set(HEALTH_CACHE_KEY, "ok", 10)
        return cache.get(HEALTH_CACHE_KEY) == "ok"
    except (ConnectionInterrupted, RedisError) as exc:
        logger.error(f"Health check: cache unavailable: {exc}")
        return False


class HealthCheckView(APIView):
    """
    Liveness and dependency report wrapped in the standard envelope. Answers
    503 when the database or the cache is unreachable, or when AI is enabled
    but only the keyword heuristic can answer. Content-hash modes are
    informational.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []
    serializer_class = None

    @extend_schema(summary="Service health", responses={200: OpenApiTypes.OBJECT, 503: OpenApiTypes.OBJECT})
    def get(self, request):
        context = request.app_context
        database_ok = check_database()
        cache_ok = check_cache()
        ai_mode = context.analyzer.mode
        if not context.flag("ENABLE_AI"):
            ai_status = "disabled"
        else:
            ai_status = ai_mode
        # enabled AI without a remote provider counts as degraded
        ai_ok = ai_status != "fallback"
        healthy = database_ok and cache_ok and ai_ok

        blockchain_mode = "rpc" if settings.BLOCKCHAIN_RPC_URL and settings.CONTRACT_ADDRESS else "local"
        if not context.flag("ENABLE_BLOCKCHAIN"):
            blockchain_mode = "disabled"

        payload = {
            "status": "healthy" if healthy else "degraded",
            "timestamp": timezone.now().isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 2),
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "services": {
                "database": "connected" if database_ok else "disconnected",
                "cache": "connected" if cache_ok else "disconnected",
                "ai": ai_status,
                "blockchain": blockchain_mode,
                "storage": context.content_store.name,
            },
            "modes": {
                "auth": context.auth_provider.name,
                "ai": ai_mode,
                "blockchain": blockchain_mode,
            },
        }
        return success_response(
            data=payload,
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver
from django_redis.exceptions import ConnectionInterrupted
from redis.exceptions import RedisError

from review_rating.models import Review
from .analytics_cache import invalidate_summaries

logger = logging.getLogger("rest_framework")


@receiver([post_save, post_delete], sender=Review)
def _on_review_change(sender, instance, **kwargs):
    try:
        invalidate_summaries()
    except (ConnectionInterrupted, RedisError) as exc:
        logger.warning(f"Could not invalidate analytics cache: {exc}")

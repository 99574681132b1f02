from django.core.cache import cache

from .services import TIME_RANGES, ReviewAnalytics

CACHE_VERSION = 1  # so this will stay same for simplicity
CACHE_TTL = 5 * 60  # 5 minutes


def _cache_key(time_range):
    return f"analytics:v{CACHE_VERSION}:range:{time_range}"


def get_cached_summary(time_range):
    """
    Returns the aggregate summary for `time_range`, computing it at most
    once per CACHE_TTL. Review writes clear every range (see signals).
    """
    analytics = ReviewAnalytics(time_range)
    key = _cache_key(analytics.time_range)
    summary = cache.get(key)

    if summary is None:
        summary = analytics.summary()
        cache.set(key, summary, CACHE_TTL)
    return summary


def invalidate_summaries():
    cache.delete_many([_cache_key(time_range) for time_range in TIME_RANGES])

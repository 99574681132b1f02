import logging

from celery import shared_task
from django.db import transaction
from kombu.exceptions import OperationalError as BrokerUnavailable

from .pipeline import EnrichmentPipeline

logger = logging.getLogger("rest_framework")


@shared_task
def enrich_review(review_id):
    # enrichment failures are logged only; they never reach the submitter
    try:
        EnrichmentPipeline.from_settings().enrich(review_id)
    except Exception as exc:
        logger.exception(f"Enrichment of review {review_id} failed: {exc}")


def schedule_enrichment(review_id):
    """Queues enrichment once the surrounding transaction has committed."""

    def _enqueue():
        try:
            enrich_review.delay(str(review_id))
        except BrokerUnavailable as exc:
            logger.error(f"Could not queue enrichment for review {review_id}: {exc}")

    transaction.on_commit(_enqueue)

import logging

from django.conf import settings
from django.utils import timezone

from notification_app.broadcast import Broadcaster
from review_rating.store import ReviewStore
from utils import errors

from .analyzers import AnalysisRequest, AnalyzerChain
from .content_store import build_content_store
from .hashing import canonical_json, review_hash_payload, safe_content_hash

logger = logging.getLogger("rest_framework")


class EnrichmentPipeline:
    """
    Post-processing of a freshly written review: sentiment and fake analysis,
    content hash, optional content-store pinning, then a `review_update`
    broadcast. Runs out of band from the request that created the review.
    """

    def __init__(self, store, analyzer, content_store=None, broadcaster=None, rng=None):
        self.store = store
        self.analyzer = analyzer
        self.content_store = content_store
        self.broadcaster = broadcaster
        self.rng = rng

    @classmethod
    def from_settings(cls):
        return cls(
            store=ReviewStore(),
            analyzer=AnalyzerChain.from_settings(),
            content_store=build_content_store() if settings.ENABLE_BLOCKCHAIN else None,
            broadcaster=Broadcaster(),
        )

    def enrich(self, review_id):
        try:
            review = self.store.get(review_id)
        except errors.NotFoundError:
            logger.warning(f"Enrichment skipped: review {review_id} no longer exists")
            return None

        result = self.analyzer.analyze(AnalysisRequest.from_review(review))
        fields = result.as_fields()

        payload = review_hash_payload(review)
        fields["blockchain_hash"] = safe_content_hash(payload, rng=self.rng)
        fields["enriched_at"] = timezone.now()

        if self.content_store is not None:
            try:
                fields["content_address"] = self.content_store.put(canonical_json(payload))
                fields["blockchain_verified"] = True
            except (errors.UpstreamUnavailableError, errors.EncodingError) as exc:
                logger.warning(f"Content store unavailable for review {review_id}: {exc.message}")

        try:
            review = self.store.apply_enrichment(review_id, fields)
        except errors.NotFoundError:
            logger.warning(f"Review {review_id} was deleted during enrichment")
            return None

        logger.info(f"Review {review_id} enriched by {result.provider}: {result.sentiment}")
        if self.broadcaster is not None:
            self.broadcaster.review_update(review)
        return review

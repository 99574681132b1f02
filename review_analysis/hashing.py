"""
Content hashing for reviews.

A review's "blockchain hash" is the SHA-256 of its canonical JSON form: keys
sorted, compact separators, UTF-8. The same record always produces the same
digest, so verification is recompute-and-compare.
"""
import hashlib
import json
import logging
import random

from utils import errors

logger = logging.getLogger("rest_framework")

HEX_DIGITS = "0123456789abcdef"
FALLBACK_DIGEST_LENGTH = 40


def canonical_json(record) -> bytes:
    try:
        text = json.dumps(
            record,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise errors.EncodingError(f"Record cannot be canonicalized: {exc}") from exc
    return text.encode("utf-8")


def digest_bytes(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def content_hash(record) -> str:
    return digest_bytes(canonical_json(record))


def fallback_digest(rng=None) -> str:
    """Non-cryptographic stand-in used when a record cannot be encoded."""
    rng = rng or random.Random()
    return "0x" + "".join(rng.choice(HEX_DIGITS) for _ in range(FALLBACK_DIGEST_LENGTH))


def safe_content_hash(record, rng=None) -> str:
    try:
        return content_hash(record)
    except errors.EncodingError as exc:
        logger.warning(f"Falling back to a random digest: {exc.message}")
        return fallback_digest(rng)


def verify_content_hash(record, digest) -> bool:
    try:
        return content_hash(record) == digest
    except errors.EncodingError:
        return False


def review_hash_payload(review):
    return {
        "title": review.title,
        "content": review.content,
        "rating": review.rating,
        "timestamp": review.created_at.isoformat(),
        "authorId": str(review.author_id),
    }

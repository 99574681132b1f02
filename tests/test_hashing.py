import hashlib
import random

import pytest

from review_analysis.hashing import (
    canonical_json,
    content_hash,
    review_hash_payload,
    safe_content_hash,
    verify_content_hash,
)
from utils import errors

from .conftest import ReviewFactory


def test_content_hash_is_sha256_of_canonical_json():
    record = {"title": "Nice", "rating": 5}
    expected = "0x" + hashlib.sha256(b'{"rating":5,"title":"Nice"}').hexdigest()
    assert content_hash(record) == expected


def test_key_order_does_not_change_the_digest():
    assert content_hash({"a": 1, "b": [1, 2]}) == content_hash({"b": [1, 2], "a": 1})


def test_non_ascii_text_is_encoded_as_utf8():
    assert canonical_json({"title": "très bien"}) == '{"title":"très bien"}'.encode("utf-8")


def test_cyclic_record_raises_encoding_error():
    record = {}
    record["self"] = record
    with pytest.raises(errors.EncodingError):
        content_hash(record)


def test_nan_is_rejected():
    with pytest.raises(errors.EncodingError):
        canonical_json({"score": float("nan")})


def test_safe_hash_falls_back_to_random_digest():
    record = {"when": object()}
    digest = safe_content_hash(record, rng=random.Random(7))

    assert digest.startswith("0x")
    assert len(digest) == 42
    assert digest == safe_content_hash(record, rng=random.Random(7))


def test_verify_content_hash():
    record = {"title": "Nice", "rating": 5}
    digest = content_hash(record)

    assert verify_content_hash(record, digest)
    assert not verify_content_hash({**record, "rating": 4}, digest)
    assert not verify_content_hash({"x": object()}, digest)


@pytest.mark.django_db
def test_review_hash_payload_fields():
    review = ReviewFactory()
    payload = review_hash_payload(review)

    assert payload == {
        "title": review.title,
        "content": review.content,
        "rating": review.rating,
        "timestamp": review.created_at.isoformat(),
        "authorId": str(review.author_id),
    }
    assert content_hash(payload) == content_hash(review_hash_payload(review))

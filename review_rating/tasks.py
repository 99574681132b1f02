import logging

from celery import shared_task
from django.db import InterfaceError, OperationalError

from review_analysis.tasks import schedule_enrichment
from users.models import User
from utils import errors

from .gateway import LocalCacheTier
from .store import ReviewStore
from .verification import PurchaseVerification

logger = logging.getLogger("rest_framework")


def _replay(store, entry):
    if entry["op"] == "submit":
        author = User.objects.get(pk=entry["author_id"])
        verification = entry.get("verification")
        store.create(
            author,
            entry["data"],
            verification=PurchaseVerification.from_dict(verification) if verification else None,
        )
    elif entry["op"] == "status":
        moderator = User.objects.filter(pk=entry.get("moderator_id")).first() if entry.get("moderator_id") else None
        store.set_status(entry["review_id"], entry["status"], moderator, entry.get("notes", ""))
    else:
        raise errors.ValidationError(f"Unknown offline operation: {entry['op']}")


@shared_task
def replay_offline_queue():
    """
    Replays submissions and moderation decisions queued while the database
    was unreachable. Stops and re-queues the remainder if it is still down.
    """
    entries = LocalCacheTier.drain()
    if not entries:
        return 0

    store = ReviewStore(on_content_change=schedule_enrichment)
    replayed = 0
    for index, entry in enumerate(entries):
        try:
            _replay(store, entry)
        except (OperationalError, InterfaceError) as exc:
            logger.warning(f"Database still unavailable, re-queueing {len(entries) - index} offline entries: {exc}")
            LocalCacheTier.requeue(entries[index:])
            break
        except (errors.FeedbackError, User.DoesNotExist) as exc:
            logger.warning(f"Dropping offline {entry.get('op')} entry: {exc}")
            continue
        replayed += 1

    logger.info(f"Replayed {replayed} offline review operations")
    return replayed

"""
Booking Service - Business Logic

Sync triggering, ledger reads, history clearing and push subscription
registration. Separates business logic from HTTP routing concerns.
"""

from config import load_sync_config
from database import get_subscription_store
from mailsync.booking_sync import get_orchestrator, get_published_status
from mailsync.logging_config import get_logger
from tasks.booking_tasks import sync_bookings_task

logger = get_logger(__name__)

DEEP_DEPTH = "all"


def start_sync(depth: str = None, inline: bool = False) -> dict:
    """
    Start a booking sync.

    Args:
        depth: 'all' for a deep scan, anything else for the default window
        inline: Run in this process and return the outcome instead of queueing

    Returns:
        Queued task details, or the cycle outcome when inline
    """
    deep = (depth or "").lower() == DEEP_DEPTH
    lookback_days = load_sync_config().lookback_for(deep)

    if inline:
        result = get_orchestrator().trigger(deep=deep)
        if result is None:
            return {"status": "skipped", "reason": "sync already in progress"}
        return {"status": "completed" if result.succeeded else "failed", **result.to_dict()}

    task = sync_bookings_task.delay(deep=deep)
    logger.info(f"Booking sync queued: task_id={task.id}, lookback={lookback_days} days")

    return {
        "status": "queued",
        "task_id": task.id,
        "deep": deep,
        "lookback_days": lookback_days,
    }


def get_sync_status() -> dict:
    """Last published status (shared via Redis), else this process's own status."""
    published = get_published_status()
    if published:
        return published
    return get_orchestrator().status()


def get_bookings() -> list[dict]:
    """
    Booking ledger through the read cache, newest first.

    Raises:
        StoreError: If the store is unreadable and nothing is cached
    """
    records = get_orchestrator().read_cache.read()
    return [r.to_dict() for r in records]


def clear_history() -> dict:
    orchestrator = get_orchestrator()
    orchestrator.store.clear()
    orchestrator.read_cache.invalidate()
    logger.info("Booking history cleared")
    return {"status": "cleared"}


def subscribe(location: str, subscription: dict) -> dict:
    """
    Register a push subscription for a location.

    Raises:
        ValueError: If location or subscription is missing/invalid
    """
    store = get_subscription_store(load_sync_config())
    entry = store.save(location, subscription)
    logger.info(f"Push subscription saved for location: {entry.location}")
    return {"status": "subscribed", "location": entry.location}

"""Celery tasks for booking mailbox sync."""

from celery_app import celery_app
from mailsync.logging_config import get_logger

logger = get_logger(__name__)


@celery_app.task(bind=True)
def sync_bookings_task(self, deep: bool = False):
    """
    Celery task to run one booking sync cycle.

    Args:
        deep: Scan the deep lookback window (manual 'all' sync)

    Returns:
        dict: Cycle statistics, or {"status": "skipped"} if a cycle was already running
    """
    from mailsync.booking_sync import get_orchestrator

    self.update_state(state="STARTED", meta={"status": "syncing", "deep": deep})

    try:
        orchestrator = get_orchestrator()
    except Exception as e:
        logger.error(f"Could not build sync orchestrator: {e}")
        return {"status": "failed", "error": str(e)}

    result = orchestrator.trigger(deep=deep)
    if result is None:
        return {"status": "skipped", "reason": "sync already in progress"}

    return {
        "status": "completed" if result.succeeded else "failed",
        **result.to_dict(),
    }


@celery_app.task
def clear_bookings_task():
    """Celery task to clear the booking ledger."""
    from services.booking_service import clear_history

    return clear_history()

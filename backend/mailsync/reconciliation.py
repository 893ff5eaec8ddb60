"""
Booking Reconciliation

Merges a batch of freshly extracted bookings into the stored history.
A batch record replaces the stored record with the same id wholesale;
stored ids absent from the batch are kept untouched.
"""

from dataclasses import dataclass, field
from typing import Iterable

from database.models.booking import BookingAlert
from mailsync.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ReconciliationResult:
    records: list[BookingAlert]
    inserted_ids: list[str] = field(default_factory=list)
    replaced_ids: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted_ids or self.replaced_ids)


def reconcile(history: Iterable[BookingAlert], batch: Iterable[BookingAlert]) -> ReconciliationResult:
    """
    Merge batch into history.

    Args:
        history: Stored bookings
        batch: Bookings extracted this cycle (new ids and re-offered stale ids)

    Returns:
        ReconciliationResult with unique ids. A batch record identical to the
        stored one is neither inserted nor replaced.
    """
    merged: dict[str, BookingAlert] = {}
    for record in history:
        merged[record.id] = record

    latest: dict[str, BookingAlert] = {}
    for record in batch:
        latest[record.id] = record

    inserted, replaced = [], []
    for record_id, record in latest.items():
        existing = merged.get(record_id)
        if existing is None:
            inserted.append(record_id)
        elif existing != record:
            replaced.append(record_id)
        else:
            continue
        merged[record_id] = record

    if inserted or replaced:
        logger.info(f"Reconciled batch: {len(inserted)} new, {len(replaced)} healed")

    return ReconciliationResult(
        records=list(merged.values()),
        inserted_ids=inserted,
        replaced_ids=replaced,
    )

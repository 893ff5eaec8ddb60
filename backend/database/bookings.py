"""
Booking Ledger Storage

Persists the booking ledger as one JSON document, either in a local file
(development) or under a single Redis key (production). Every write
deduplicates ids, orders records newest-first and enforces the retention
cap; a write whose content equals what is already stored is skipped.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

import redis

from database.models.booking import BookingAlert
from mailsync.error_tracking import ConfigurationError, StoreError
from mailsync.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_RETENTION_CAP = 1000


def prepare_records(records: Iterable, retention_cap: int = DEFAULT_RETENTION_CAP) -> list:
    """
    Validate, deduplicate, order and cap records for persistence.

    Args:
        records: BookingAlert objects (or their persisted dict form)
        retention_cap: Maximum number of records kept

    Returns:
        List of BookingAlert, newest first, unique ids, at most retention_cap long
    """
    by_id = {}
    for record in records:
        if not isinstance(record, BookingAlert):
            record = BookingAlert.from_dict(record)
        # Later occurrences win
        by_id[record.id] = record

    ordered = sorted(by_id.values(), key=lambda r: r.timestamp, reverse=True)
    if len(ordered) > retention_cap:
        logger.info(f"Retention cap reached: dropping {len(ordered) - retention_cap} oldest bookings")
    return ordered[:retention_cap]


def decode_records(raw: Optional[str]) -> list:
    """Parse a stored JSON document into BookingAlert records, dropping invalid entries."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreError(f"Stored bookings are not valid JSON: {e}")
    if not isinstance(data, list):
        raise StoreError("Stored bookings document is not a list")

    records = []
    for item in data:
        try:
            records.append(BookingAlert.from_dict(item))
        except (ValueError, TypeError) as e:
            logger.warning(f"Dropping invalid stored booking {item!r:.80}: {e}")
    return records


def encode_records(records: list) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)


class BookingStore:
    """Base ledger store: subclasses provide raw document load/save."""

    def __init__(self, retention_cap: int = DEFAULT_RETENTION_CAP):
        self.retention_cap = retention_cap

    def _load_raw(self) -> Optional[str]:
        raise NotImplementedError

    def _save_raw(self, payload: str) -> None:
        raise NotImplementedError

    def read(self) -> list:
        """Return stored bookings, newest first. Raises StoreError on failure."""
        records = decode_records(self._load_raw())
        logger.debug(f"Read {len(records)} bookings from {self}")
        return records

    def write(self, records: Iterable) -> list:
        """
        Overwrite the ledger.

        Args:
            records: Full set of bookings to persist

        Returns:
            The records as persisted (deduplicated, newest first, capped)

        Raises:
            StoreError: If the write fails
        """
        prepared = prepare_records(records, self.retention_cap)
        payload = encode_records(prepared)

        if payload == self._load_raw():
            logger.info("Booking ledger unchanged, skipping write")
            return prepared

        self._save_raw(payload)
        logger.info(f"Booking ledger written ({len(prepared)} records)")
        return prepared

    def clear(self) -> None:
        self._save_raw(encode_records([]))
        logger.info(f"Booking ledger cleared ({self})")


class JsonFileBookingStore(BookingStore):
    """Ledger stored in a local JSON file (development)."""

    def __init__(self, path, retention_cap: int = DEFAULT_RETENTION_CAP):
        super().__init__(retention_cap)
        self.path = Path(path)

    def __repr__(self):
        return f"JsonFileBookingStore({self.path})"

    def _load_raw(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Could not read {self.path}: {e}")

    def _save_raw(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}")


class RedisBookingStore(BookingStore):
    """Ledger stored under a single Redis key (production)."""

    def __init__(self, client: redis.Redis, key: str = "bookings",
                 retention_cap: int = DEFAULT_RETENTION_CAP):
        super().__init__(retention_cap)
        self.client = client
        self.key = key

    def __repr__(self):
        return f"RedisBookingStore({self.key})"

    def _load_raw(self) -> Optional[str]:
        try:
            return self.client.get(self.key)
        except redis.RedisError as e:
            raise StoreError(f"Redis read failed for '{self.key}': {e}")

    def _save_raw(self, payload: str) -> None:
        try:
            self.client.set(self.key, payload)
        except redis.RedisError as e:
            raise StoreError(f"Redis write failed for '{self.key}': {e}")


def get_booking_store(config, redis_client: Optional[redis.Redis] = None) -> BookingStore:
    """
    Build the ledger store for the configured environment.

    Development uses data/<key>.json; production requires Redis.

    Raises:
        ConfigurationError: If production is configured without a reachable Redis
    """
    if config.is_dev:
        path = Path(config.data_dir) / f"{config.bookings_key}.json"
        return JsonFileBookingStore(path, retention_cap=config.retention_cap)

    if redis_client is None:
        from cache_manager import get_redis_client
        redis_client = get_redis_client(config.redis_url)
    if redis_client is None:
        raise ConfigurationError("REDIS_URL is required for production booking storage")
    return RedisBookingStore(redis_client, key=config.bookings_key,
                             retention_cap=config.retention_cap)

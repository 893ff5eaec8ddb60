"""
Redis Cache Manager for Court Booking Alerts
Provides the shared Redis client, small JSON cache helpers (sync status)
and the cache-aside read cache that sits in front of the booking store.
"""

import json
import logging
import os
import threading
import time
from typing import Any, Callable, Optional

import redis

from mailsync.error_tracking import StoreError

logger = logging.getLogger(__name__)

# Redis connection singleton
_redis_client: Optional[redis.Redis] = None

# Default TTL (15 minutes = 900 seconds)
DEFAULT_TTL = 900

# Booking reads older than this are refreshed from the store
DEFAULT_READ_TTL = 30.0


def get_redis_client(url: Optional[str] = None) -> Optional[redis.Redis]:
    """
    Get the shared Redis client.

    Args:
        url: Connection URL (SyncConfig.redis_url); REDIS_URL/KV_URL when omitted

    Returns None if no URL is configured or Redis is unavailable
    (graceful degradation).
    """
    global _redis_client

    if _redis_client is None:
        url = url or os.getenv('REDIS_URL') or os.getenv('KV_URL') or ''
        if not url:
            return None
        try:
            _redis_client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            _redis_client.ping()
            logger.info(f"Redis connected ({url[:10]}...)")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis unavailable (graceful degradation): {e}")
            _redis_client = None

    return _redis_client


def cache_get(key: str) -> Optional[Any]:
    """
    Get cached value by key.
    Returns None if key not found or Redis unavailable.
    """
    client = get_redis_client()
    if not client:
        return None

    try:
        value = client.get(key)
        if value:
            logger.debug(f"Cache HIT: {key}")
            return json.loads(value)
        logger.debug(f"Cache MISS: {key}")
        return None
    except (redis.RedisError, json.JSONDecodeError) as e:
        logger.warning(f"Cache read error for key '{key}': {e}")
        return None


def cache_set(key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
    """
    Set cached value with TTL.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds (default 900 = 15 minutes)

    Returns:
        True if successful, False otherwise
    """
    client = get_redis_client()
    if not client:
        return False

    try:
        serialized = json.dumps(value, default=str)  # default=str handles datetime
        client.setex(key, ttl, serialized)
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True
    except (redis.RedisError, TypeError, ValueError) as e:
        logger.warning(f"Cache write error for key '{key}': {e}")
        return False


class BookingReadCache:
    """
    Cache-aside reader in front of a booking store.

    Serves the last read while it is younger than ``ttl`` seconds, refreshes
    from the store otherwise, and falls back to the stale copy when the store
    read fails. The store stays the source of truth: writes go to the store
    and then refresh this cache via ``update``.

    Usage:
        reader = BookingReadCache(store, ttl=30)
        bookings = reader.read()             # dashboard load, may be cached
        bookings = reader.read(fresh=True)   # sync cycle start
    """

    def __init__(self, store, ttl: float = DEFAULT_READ_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.ttl = ttl
        self._clock = clock
        self._records: Optional[list] = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()

    @property
    def has_copy(self) -> bool:
        return self._records is not None

    def is_fresh(self) -> bool:
        return self._records is not None and (self._clock() - self._loaded_at) < self.ttl

    def read(self, fresh: bool = False) -> list:
        """
        Return the booking ledger.

        Args:
            fresh: Skip the cached copy and read the store (stale copy is
                still used if the store read fails)

        Returns:
            List of BookingAlert records

        Raises:
            StoreError: If the store read fails and there is no cached copy
        """
        with self._lock:
            if not fresh and self.is_fresh():
                logger.debug("Booking cache HIT")
                return list(self._records)

            try:
                records = self.store.read()
            except StoreError as e:
                if self._records is None:
                    raise
                logger.warning(f"Booking store read failed, serving stale cache: {e}")
                return list(self._records)

            self._records = list(records)
            self._loaded_at = self._clock()
            logger.debug(f"Booking cache refreshed ({len(records)} records)")
            return list(records)

    def update(self, records: list) -> None:
        """Replace the cached copy after a successful store write."""
        with self._lock:
            self._records = list(records)
            self._loaded_at = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            self._records = None
            self._loaded_at = 0.0

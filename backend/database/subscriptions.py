"""
Push Subscription Storage

Holds (location, push subscription) pairs used to target booking
notifications. A browser subscription is registered for at most one
location; saving it again replaces the previous entry.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

import redis

from mailsync.error_tracking import ConfigurationError, StoreError
from mailsync.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class LocationSubscription:
    location: str
    subscription: dict
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def endpoint(self) -> str:
        return self.subscription.get("endpoint", "")

    def same_subscription(self, subscription: dict) -> bool:
        return _fingerprint(self.subscription) == _fingerprint(subscription)


def _fingerprint(subscription: dict) -> str:
    return json.dumps(subscription, sort_keys=True)


def _validate(location: str, subscription: dict) -> None:
    if not location or not isinstance(location, str):
        raise ValueError("location is required")
    if not isinstance(subscription, dict) or not subscription.get("endpoint"):
        raise ValueError("subscription must be an object with an endpoint")


class InMemorySubscriptionStore:
    """Process-local subscriptions (development)."""

    def __init__(self):
        self._items: list[LocationSubscription] = []

    def list_all(self) -> list[LocationSubscription]:
        return list(self._items)

    def save(self, location: str, subscription: dict) -> LocationSubscription:
        _validate(location, subscription)
        entry = LocationSubscription(location=location, subscription=subscription)
        self._items = [s for s in self._items if not s.same_subscription(subscription)]
        self._items.append(entry)
        return entry

    def remove(self, subscription: dict) -> bool:
        before = len(self._items)
        self._items = [s for s in self._items if not s.same_subscription(subscription)]
        return len(self._items) < before


class RedisSubscriptionStore:
    """Subscriptions stored as one JSON list under a Redis key (production)."""

    def __init__(self, client: redis.Redis, key: str = "push_subscriptions"):
        self.client = client
        self.key = key

    def list_all(self) -> list[LocationSubscription]:
        try:
            raw = self.client.get(self.key)
        except redis.RedisError as e:
            raise StoreError(f"Redis read failed for '{self.key}': {e}")
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"Stored subscriptions are not valid JSON: {e}")

        subscriptions = []
        for item in items:
            try:
                subscriptions.append(LocationSubscription(**item))
            except TypeError:
                logger.warning(f"Dropping malformed subscription entry: {item!r:.80}")
        return subscriptions

    def _save_all(self, items: list[LocationSubscription]) -> None:
        try:
            self.client.set(self.key, json.dumps([asdict(s) for s in items]))
        except redis.RedisError as e:
            raise StoreError(f"Redis write failed for '{self.key}': {e}")

    def save(self, location: str, subscription: dict) -> LocationSubscription:
        _validate(location, subscription)
        entry = LocationSubscription(location=location, subscription=subscription)
        items = [s for s in self.list_all() if not s.same_subscription(subscription)]
        items.append(entry)
        self._save_all(items)
        return entry

    def remove(self, subscription: dict) -> bool:
        items = self.list_all()
        kept = [s for s in items if not s.same_subscription(subscription)]
        if len(kept) == len(items):
            return False
        self._save_all(kept)
        return True


_memory_store: Optional[InMemorySubscriptionStore] = None


def get_subscription_store(config, redis_client: Optional[redis.Redis] = None):
    """
    Build the subscription store for the configured environment.

    Raises:
        ConfigurationError: If production is configured without a reachable Redis
    """
    global _memory_store

    if config.is_dev:
        if _memory_store is None:
            _memory_store = InMemorySubscriptionStore()
        return _memory_store

    if redis_client is None:
        from cache_manager import get_redis_client
        redis_client = get_redis_client(config.redis_url)
    if redis_client is None:
        raise ConfigurationError("REDIS_URL is required for production subscription storage")
    return RedisSubscriptionStore(redis_client, key=config.subscriptions_key)

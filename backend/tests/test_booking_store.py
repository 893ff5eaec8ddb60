"""Tests for booking ledger and push subscription storage."""

import json
from unittest.mock import MagicMock

import pytest
import redis

from database.bookings import (
    JsonFileBookingStore,
    RedisBookingStore,
    get_booking_store,
    prepare_records,
)
from database.subscriptions import (
    InMemorySubscriptionStore,
    RedisSubscriptionStore,
)
from config import AppEnv, SyncConfig
from mailsync.error_tracking import ConfigurationError, StoreError

SUBSCRIPTION = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "k", "auth": "a"}}


@pytest.fixture
def fake_redis():
    """MagicMock Redis client backed by a dict."""
    data = {}
    client = MagicMock()
    client.get.side_effect = lambda key: data.get(key)
    client.set.side_effect = lambda key, value: data.__setitem__(key, value)
    client.data = data
    return client


# ============================================================================
# LEDGER
# ============================================================================


def test_retention_cap_keeps_newest_first(tmp_path, make_booking):
    """1050 records with cap 1000 → exactly the 1000 newest, newest first."""
    store = JsonFileBookingStore(tmp_path / "bookings.json", retention_cap=1000)
    records = [make_booking(str(i), minutes_ago=i) for i in range(1050)]

    store.write(records)
    stored = store.read()

    assert len(stored) == 1000
    assert [r.id for r in stored] == [str(i) for i in range(1000)]
    assert all(a.timestamp >= b.timestamp for a, b in zip(stored, stored[1:]))


def test_prepare_records_deduplicates_ids(make_booking):
    prepared = prepare_records([make_booking("1", location="Thane"), make_booking("1", location="Powai")])

    assert len(prepared) == 1
    assert prepared[0].location == "Powai"


def test_json_store_empty_when_file_missing(tmp_path):
    assert JsonFileBookingStore(tmp_path / "missing.json").read() == []


def test_json_store_clear(tmp_path, make_booking):
    store = JsonFileBookingStore(tmp_path / "bookings.json")
    store.write([make_booking("1")])

    store.clear()

    assert store.read() == []


def test_unchanged_write_is_skipped(fake_redis, make_booking):
    store = RedisBookingStore(fake_redis, key="bookings")
    records = [make_booking("1"), make_booking("2", minutes_ago=5)]

    store.write(records)
    store.write(list(reversed(records)))

    assert fake_redis.set.call_count == 1


def test_invalid_stored_entries_dropped(fake_redis, make_booking):
    fake_redis.data["bookings"] = json.dumps([
        make_booking("1").to_dict(),
        {"id": "2", "platform": "Courtify", "timestamp": "2026-02-01T09:00:00+00:00"},
        "not a record",
    ])

    records = RedisBookingStore(fake_redis).read()

    assert [r.id for r in records] == ["1"]


def test_corrupt_document_raises_store_error(fake_redis):
    fake_redis.data["bookings"] = "{not json"

    with pytest.raises(StoreError):
        RedisBookingStore(fake_redis).read()


def test_redis_failure_raises_store_error():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("connection refused")

    with pytest.raises(StoreError):
        RedisBookingStore(client).read()


def test_development_store_uses_test_file(sync_config, tmp_path):
    store = get_booking_store(sync_config)

    assert isinstance(store, JsonFileBookingStore)
    assert store.path == tmp_path / "bookings_test.json"


def test_production_store_requires_redis(tmp_path, fake_redis):
    config = SyncConfig(app_env=AppEnv.PRODUCTION, data_dir=str(tmp_path))

    with pytest.raises(ConfigurationError):
        get_booking_store(config)

    store = get_booking_store(config, redis_client=fake_redis)
    assert isinstance(store, RedisBookingStore)
    assert store.key == "bookings"


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================


def test_saving_same_subscription_replaces_location():
    store = InMemorySubscriptionStore()

    store.save("Andheri", SUBSCRIPTION)
    store.save("Baner", dict(SUBSCRIPTION))

    subscriptions = store.list_all()
    assert len(subscriptions) == 1
    assert subscriptions[0].location == "Baner"


@pytest.mark.parametrize(
    "location,subscription",
    [
        ("", SUBSCRIPTION),
        ("Andheri", {}),
        ("Andheri", {"keys": {}}),
        ("Andheri", None),
    ],
)
def test_invalid_subscription_rejected(location, subscription):
    with pytest.raises(ValueError):
        InMemorySubscriptionStore().save(location, subscription)


def test_redis_subscription_store(fake_redis):
    store = RedisSubscriptionStore(fake_redis, key="push_subscriptions")
    other = {"endpoint": "https://push.example.com/other"}

    store.save("Andheri", SUBSCRIPTION)
    store.save("Thane", other)
    assert [s.location for s in store.list_all()] == ["Andheri", "Thane"]

    assert store.remove(SUBSCRIPTION) is True
    assert store.remove(SUBSCRIPTION) is False
    assert [s.endpoint for s in store.list_all()] == ["https://push.example.com/other"]

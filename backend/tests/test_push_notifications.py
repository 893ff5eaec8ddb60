"""Tests for booking push notification fan-out."""

from unittest.mock import MagicMock, Mock, patch

import pytest
from pywebpush import WebPushException

from config import SyncConfig
from database.subscriptions import InMemorySubscriptionStore
from mailsync.error_tracking import NotificationError, StoreError
from mailsync.push_notifications import (
    PushDispatcher,
    WebPushSender,
    build_payload,
    select_targets,
)


def _subscription(n):
    return {"endpoint": f"https://push.example.com/{n}", "keys": {"p256dh": "k", "auth": "a"}}


class RecordingSender:
    """Sender that records deliveries and fails for chosen endpoints."""

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.sent = []

    def send(self, subscription, payload):
        endpoint = subscription["endpoint"]
        if endpoint in self.failures:
            raise self.failures[endpoint]
        self.sent.append((endpoint, payload))


@pytest.fixture
def subscriptions():
    store = InMemorySubscriptionStore()
    store.save("Andheri", _subscription(1))
    store.save("Andheri", _subscription(2))
    store.save("Andheri", _subscription(3))
    store.save("Baner", _subscription(4))
    return store


# ============================================================================
# PAYLOAD & TARGETING
# ============================================================================


def test_payload_uses_generic_label_for_general_sport(make_booking):
    payload = build_payload(make_booking(sport="General"))

    assert payload == {
        "title": "🏆 New Booking!",
        "body": "Playo: 7:00 PM - 8:00 PM at Andheri",
        "url": "/",
    }


def test_payload_names_the_sport(make_booking):
    assert build_payload(make_booking(sport="Pickleball"))["title"] == "🏆 New Pickleball!"


def test_targets_filtered_by_location(subscriptions):
    targets = select_targets("Baner", subscriptions.list_all())

    assert [t.endpoint for t in targets] == ["https://push.example.com/4"]


@pytest.mark.parametrize("location", ["", "Unknown", "Unknown Location", "General"])
def test_generic_location_broadcasts(subscriptions, location):
    assert len(select_targets(location, subscriptions.list_all())) == 4


# ============================================================================
# DISPATCH
# ============================================================================


def test_failed_subscriber_does_not_block_others(subscriptions, make_booking):
    sender = RecordingSender(failures={
        "https://push.example.com/2": NotificationError("boom", status_code=500),
    })
    dispatcher = PushDispatcher(subscriptions, sender)

    report = dispatcher.dispatch([make_booking("1")])

    assert report.delivered == 2
    assert report.failed == 1
    assert report.expired == 0
    assert sorted(endpoint for endpoint, _ in sender.sent) == [
        "https://push.example.com/1",
        "https://push.example.com/3",
    ]


def test_expired_subscription_counted(subscriptions, make_booking):
    sender = RecordingSender(failures={
        "https://push.example.com/4": NotificationError("gone", status_code=410),
    })

    report = PushDispatcher(subscriptions, sender).dispatch([make_booking("1", location="Baner")])

    assert report.delivered == 0
    assert report.failed == 1
    assert report.expired == 1


def test_unexpected_sender_error_counted_as_failure(subscriptions, make_booking):
    sender = RecordingSender(failures={"https://push.example.com/4": RuntimeError("socket closed")})

    report = PushDispatcher(subscriptions, sender).dispatch([make_booking("1", location="Baner")])

    assert report.failed == 1
    assert report.errors == ["socket closed"]


def test_one_notification_per_booking_per_target(subscriptions, make_booking):
    sender = RecordingSender()

    report = PushDispatcher(subscriptions, sender).dispatch([
        make_booking("1"),
        make_booking("2", location="Baner"),
    ])

    assert report.delivered == 4


def test_disabled_dispatcher_sends_nothing(subscriptions, make_booking):
    dispatcher = PushDispatcher.from_config(SyncConfig(), subscriptions)

    assert not dispatcher.enabled
    assert dispatcher.dispatch([make_booking("1")]).delivered == 0


def test_unreadable_subscriptions_reported(make_booking):
    store = MagicMock()
    store.list_all.side_effect = StoreError("redis down")

    report = PushDispatcher(store, RecordingSender()).dispatch([make_booking("1")])

    assert report.delivered == 0
    assert report.errors == ["redis down"]


# ============================================================================
# WEB PUSH SENDER
# ============================================================================


def test_sender_signs_with_vapid_claims():
    sender = WebPushSender('"private-key"', "mailto:owner@example.com")

    with patch("mailsync.push_notifications.webpush") as webpush:
        sender.send(_subscription(1), {"title": "t"})

    kwargs = webpush.call_args.kwargs
    assert kwargs["vapid_private_key"] == "private-key"
    assert kwargs["vapid_claims"] == {"sub": "mailto:owner@example.com"}
    assert kwargs["data"] == '{"title": "t"}'


def test_sender_wraps_push_service_rejection():
    sender = WebPushSender("private-key", "mailto:owner@example.com")
    rejection = WebPushException("Push failed: 410 Gone", response=Mock(status_code=410))

    with patch("mailsync.push_notifications.webpush", side_effect=rejection):
        with pytest.raises(NotificationError) as exc_info:
            sender.send(_subscription(1), {"title": "t"})

    assert exc_info.value.status_code == 410
    assert exc_info.value.is_expired

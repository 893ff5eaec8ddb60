"""
Booking Push Notifications

Sends one Web Push notification per new booking to the subscribers of
that booking's location, or to every subscriber when the location is
generic. Deliveries run in parallel; one failed or expired subscription
never blocks the others.
"""

import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

from pywebpush import WebPushException, webpush

from config import clean_vapid_key
from database.models.booking import DEFAULT_SPORT, GENERIC_LOCATIONS, BookingAlert
from mailsync.error_tracking import (
    ErrorStage,
    NotificationError,
    StoreError,
    track_error,
)
from mailsync.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 5

# Seconds the push service keeps an undelivered notification
DEFAULT_PUSH_TTL = 86400


def build_payload(record: BookingAlert) -> dict:
    """Notification title/body for one booking."""
    label = record.sport if record.sport and record.sport != DEFAULT_SPORT else "Booking"
    return {
        "title": f"🏆 New {label}!",
        "body": f"{record.platform.value}: {record.game_time} at {record.location}",
        "url": "/",
    }


def select_targets(location: str, subscriptions: list) -> list:
    """Subscribers for a location; all of them when the location is generic."""
    if not location or location in GENERIC_LOCATIONS:
        return list(subscriptions)
    return [s for s in subscriptions if s.location == location]


@dataclass
class DispatchReport:
    delivered: int = 0
    failed: int = 0
    expired: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "delivered": self.delivered,
            "failed": self.failed,
            "expired": self.expired,
        }


class WebPushSender:
    """VAPID-signed Web Push delivery via pywebpush."""

    def __init__(self, private_key: str, subject: str, ttl: int = DEFAULT_PUSH_TTL):
        self.private_key = clean_vapid_key(private_key)
        self.subject = subject
        self.ttl = ttl

    def send(self, subscription: dict, payload: dict) -> None:
        """
        Raises:
            NotificationError: With the push service's HTTP status when available
        """
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            response = getattr(e, "response", None)
            status_code = getattr(response, "status_code", None)
            raise NotificationError(f"Push delivery failed: {e}", status_code=status_code) from e


class PushDispatcher:
    """
    Fan-out of booking notifications to location subscribers.

    Usage:
        dispatcher = PushDispatcher(subscription_store, WebPushSender(key, subject))
        report = dispatcher.dispatch(new_bookings)
    """

    def __init__(self, subscriptions, sender: Optional[WebPushSender],
                 max_workers: int = DEFAULT_MAX_WORKERS):
        self.subscriptions = subscriptions
        self.sender = sender
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config, subscriptions) -> "PushDispatcher":
        if not config.push_enabled:
            logger.warning("VAPID keys missing, push notifications disabled")
            return cls(subscriptions, sender=None)
        return cls(subscriptions, WebPushSender(config.vapid_private_key, config.vapid_subject))

    @property
    def enabled(self) -> bool:
        return self.sender is not None

    def _deliver(self, subscription, payload: dict) -> None:
        self.sender.send(subscription.subscription, payload)

    def dispatch(self, new_records: list[BookingAlert], sync_cycle_id: Optional[str] = None) -> DispatchReport:
        """
        Notify subscribers about new bookings.

        Args:
            new_records: Bookings inserted this cycle
            sync_cycle_id: Cycle id for log correlation

        Returns:
            DispatchReport with delivered/failed/expired counts
        """
        report = DispatchReport()
        if not new_records:
            return report
        if not self.enabled:
            logger.warning(f"Push disabled, {len(new_records)} new bookings not notified")
            return report

        try:
            subscriptions = self.subscriptions.list_all()
        except StoreError as e:
            track_error(e, ErrorStage.NOTIFY, sync_cycle_id=sync_cycle_id)
            report.errors.append(str(e))
            return report

        jobs = []
        for record in new_records:
            payload = build_payload(record)
            targets = select_targets(record.location, subscriptions)
            logger.info(
                f"Sending to {len(targets)} devices for location: {record.location}",
                extra={"message_uid": record.id, "platform": record.platform.value},
            )
            jobs.extend((record, target, payload) for target in targets)

        if not jobs:
            return report

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs))) as executor:
            future_to_job = {
                executor.submit(self._deliver, target, payload): (record, target)
                for record, target, payload in jobs
            }

            for future in as_completed(future_to_job):
                record, target = future_to_job[future]
                try:
                    future.result()
                    report.delivered += 1
                except NotificationError as e:
                    report.failed += 1
                    report.errors.append(str(e))
                    if e.is_expired:
                        report.expired += 1
                        logger.info(f"Subscription expired/invalid: {target.endpoint[:60]}")
                    track_error(e, ErrorStage.NOTIFY, context={"message_uid": record.id},
                                sync_cycle_id=sync_cycle_id, level="warning")
                except Exception as e:
                    report.failed += 1
                    report.errors.append(str(e))
                    track_error(e, ErrorStage.NOTIFY, context={"message_uid": record.id},
                                sync_cycle_id=sync_cycle_id)

        logger.info(
            f"Push fan-out complete: {report.delivered} delivered, "
            f"{report.failed} failed ({report.expired} expired)"
        )
        return report

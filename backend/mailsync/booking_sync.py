"""
Booking Sync Module

Runs one mailbox sync cycle end to end:
history read → header scan → classification → batched body fetch →
extraction → reconciliation → store write → push fan-out.

Only one cycle runs at a time (a Redis lock spans processes, an in-process
lock covers development without Redis); overlapping triggers are dropped.
Mailbox connection failures are retried once after a fixed delay.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Callable, Optional

import redis

from cache_manager import BookingReadCache, cache_get, cache_set, get_redis_client
from config import SyncConfig, load_sync_config
from database import get_booking_store, get_subscription_store
from database.models.booking import BookingAlert
from mailsync.booking_parsing import classify_platform, extract_booking
from mailsync.error_tracking import (
    ConfigurationError,
    ErrorStage,
    ExtractionError,
    MailboxConnectionError,
    StoreError,
    track_error,
)
from mailsync.imap_client import (
    UNKNOWN_RECEIVED_AT,
    ImapMailbox,
    MailboxScanner,
    MessageEnvelope,
)
from mailsync.logging_config import get_logger
from mailsync.push_notifications import DispatchReport, PushDispatcher
from mailsync.reconciliation import reconcile

logger = get_logger(__name__)

STATUS_CACHE_KEY = "sync:status"
STATUS_TTL = 86400

# One cycle across all processes (web inline syncs and the Celery worker)
SYNC_LOCK_KEY = "sync:lock"
SYNC_LOCK_TIMEOUT = 900

# The first attempt plus exactly one retry
MAX_ATTEMPTS = 2


class SyncState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    RETRY_PENDING = "retry_pending"
    FAILED = "failed"


@dataclass
class RetryState:
    """Attempt counter and retry deadline for one triggered sync."""
    delay_seconds: float
    max_attempts: int = MAX_ATTEMPTS
    clock: Callable[[], float] = time.monotonic
    attempt: int = 0
    deadline: Optional[float] = None

    def start_attempt(self) -> int:
        self.attempt += 1
        self.deadline = None
        return self.attempt

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def schedule(self) -> float:
        self.deadline = self.clock() + self.delay_seconds
        return self.delay_seconds

    def remaining(self) -> float:
        if self.deadline is None:
            return 0.0
        return max(0.0, self.deadline - self.clock())


@dataclass
class CycleResult:
    """Outcome of one triggered sync."""
    cycle_id: str
    deep: bool = False
    attempts: int = 0
    scanned: int = 0
    candidates: int = 0
    extracted: int = 0
    skipped: int = 0
    inserted_ids: list[str] = field(default_factory=list)
    replaced_ids: list[str] = field(default_factory=list)
    written: bool = False
    degraded: bool = False
    notifications: Optional[DispatchReport] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def updated_count(self) -> int:
        return len(self.inserted_ids) + len(self.replaced_ids)

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "deep": self.deep,
            "attempts": self.attempts,
            "scanned": self.scanned,
            "candidates": self.candidates,
            "extracted": self.extracted,
            "skipped": self.skipped,
            "inserted": len(self.inserted_ids),
            "replaced": len(self.replaced_ids),
            "written": self.written,
            "degraded": self.degraded,
            "notifications": self.notifications.to_dict() if self.notifications else None,
            "error": self.error,
        }


class SyncOrchestrator:
    """
    Owns the sync lock and state, and runs cycles against the mailbox.

    Args:
        config: SyncConfig
        read_cache: BookingReadCache in front of the booking store
        mailbox_factory: Callable returning a mailbox context manager
            (ImapMailbox in production)
        dispatcher: PushDispatcher, or None to skip notifications
        sleep: Sleep function used between retry attempts
        clock: Monotonic clock for retry deadlines
        lock_client: Redis client for the cross-process sync lock, or None
            to rely on the in-process lock only
    """

    def __init__(self, config: SyncConfig, read_cache: BookingReadCache,
                 mailbox_factory: Callable, dispatcher: Optional[PushDispatcher] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic,
                 lock_client=None):
        self.config = config
        self.lock_client = lock_client
        self.read_cache = read_cache
        self.mailbox_factory = mailbox_factory
        self.dispatcher = dispatcher
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self.state = SyncState.IDLE
        self.status_message = "Idle"
        self.last_result: Optional[CycleResult] = None

    @property
    def store(self):
        return self.read_cache.store

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ========================================
    # Status
    # ========================================

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "message": self.status_message,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }

    def _set_status(self, state: SyncState, message: str, cycle_id: Optional[str] = None) -> None:
        self.state = state
        self.status_message = message
        logger.info(message, extra={"sync_cycle_id": cycle_id})
        cache_set(STATUS_CACHE_KEY, self.status(), ttl=STATUS_TTL)

    # ========================================
    # Trigger
    # ========================================

    def trigger(self, deep: bool = False) -> Optional[CycleResult]:
        """
        Run one sync unless a cycle is already in progress.

        Args:
            deep: Use the deep lookback window instead of the default one

        Returns:
            CycleResult, or None if the trigger was dropped because a cycle
            is already running
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Sync already in progress, trigger dropped")
            return None

        shared_lock = self._acquire_shared_lock()
        if shared_lock is False:
            self._lock.release()
            logger.info("Sync already running in another process, trigger dropped")
            return None

        try:
            result = self._run_with_retry(deep)
            self.last_result = result
            return result
        finally:
            self.state = SyncState.IDLE
            self._release_shared_lock(shared_lock)
            self._lock.release()

    def _acquire_shared_lock(self):
        """
        Take the Redis lock shared by every process that can sync.

        Returns:
            The held lock, None when there is no usable Redis (the local
            lock alone guards the cycle), or False when another process
            holds it
        """
        if self.lock_client is None:
            return None

        try:
            lock = self.lock_client.lock(SYNC_LOCK_KEY, timeout=SYNC_LOCK_TIMEOUT)
            if not lock.acquire(blocking=False):
                return False
            return lock
        except redis.RedisError as e:
            logger.warning(f"Shared sync lock unavailable, using local lock only: {e}")
            return None

    @staticmethod
    def _release_shared_lock(lock) -> None:
        if lock is None or lock is False:
            return
        try:
            lock.release()
        except redis.RedisError as e:
            # LockError (expired or stolen) is a RedisError subclass
            logger.warning(f"Failed to release shared sync lock: {e}")

    def _run_with_retry(self, deep: bool) -> CycleResult:
        cycle_id = uuid.uuid4().hex[:8]
        retry = RetryState(
            delay_seconds=self.config.retry_delay_seconds,
            clock=self._clock,
        )
        lookback = self.config.lookback_for(deep)

        while True:
            attempt = retry.start_attempt()
            self._set_status(SyncState.RUNNING, f"Syncing (last {lookback} days)...", cycle_id)

            try:
                result = self.run_cycle(deep=deep, cycle_id=cycle_id)
                result.attempts = attempt
                if result.error:
                    self._set_status(SyncState.FAILED, f"Failed: {result.error}", cycle_id)
                else:
                    self._set_status(SyncState.IDLE, f"Updated {result.updated_count} items", cycle_id)
                return result

            except ConfigurationError as e:
                track_error(e, ErrorStage.CONFIG, sync_cycle_id=cycle_id)
                return self._fail(cycle_id, deep, attempt, e)

            except MailboxConnectionError as e:
                track_error(e, ErrorStage.CONNECT, context={"attempt": attempt},
                            sync_cycle_id=cycle_id, level="warning")
                if retry.exhausted:
                    return self._fail(cycle_id, deep, attempt, e)
                delay = retry.schedule()
                self._set_status(SyncState.RETRY_PENDING, f"Retrying in {delay:g} s...", cycle_id)
                self._sleep(retry.remaining())

            except Exception as e:
                track_error(e, ErrorStage.SCAN, sync_cycle_id=cycle_id)
                return self._fail(cycle_id, deep, attempt, e)

    def _fail(self, cycle_id: str, deep: bool, attempt: int, error: Exception) -> CycleResult:
        reason = str(error) or type(error).__name__
        self._set_status(SyncState.FAILED, f"Failed: {reason}", cycle_id)
        return CycleResult(cycle_id=cycle_id, deep=deep, attempts=attempt, error=reason)

    # ========================================
    # Cycle
    # ========================================

    def _read_history(self, cycle_id: str) -> Optional[list[BookingAlert]]:
        """Fresh ledger read; None when neither the store nor a cached copy is readable."""
        try:
            return self.read_cache.read(fresh=True)
        except StoreError as e:
            track_error(e, ErrorStage.STORAGE, sync_cycle_id=cycle_id, level="warning")
            return None

    def _extract(self, envelope: MessageEnvelope, platform, body) -> BookingAlert:
        # Relative and year-less dates follow the facility's calendar day
        received = envelope.received_at.astimezone(self.config.tzinfo)
        reference = None if envelope.received_at == UNKNOWN_RECEIVED_AT else received
        try:
            candidate = extract_booking(body, platform, envelope.subject, reference)
            return candidate.to_alert(envelope.id, envelope.subject, received)
        except Exception as e:
            raise ExtractionError(f"Could not extract booking: {e}", message_uid=envelope.id) from e

    def run_cycle(self, deep: bool = False, cycle_id: Optional[str] = None) -> CycleResult:
        """
        One sync pass (no locking or retry).

        Raises:
            ConfigurationError: Mailbox credentials are not configured
            MailboxConnectionError: The mailbox could not be reached or read
        """
        cycle_id = cycle_id or uuid.uuid4().hex[:8]
        result = CycleResult(cycle_id=cycle_id, deep=deep)

        if not self.config.has_credentials:
            raise ConfigurationError("EMAIL_USER and EMAIL_PASSWORD must be set")

        history = self._read_history(cycle_id)
        result.degraded = history is None
        known = {r.id: r for r in history or []}

        with self.mailbox_factory() as mailbox:
            scanner = MailboxScanner(mailbox, chunk_size=self.config.body_chunk_size)
            envelopes = scanner.scan(self.config.lookback_for(deep), deep=deep)
            result.scanned = len(envelopes)

            candidates = []
            for envelope in envelopes:
                existing = known.get(envelope.id)
                if existing is not None and not existing.is_stale:
                    continue
                platform = classify_platform(envelope.subject, envelope.sender)
                if platform is None:
                    continue
                candidates.append((envelope, platform))
            result.candidates = len(candidates)

            bodies = scanner.fetch_bodies([envelope.id for envelope, _ in candidates])

        batch = []
        for envelope, platform in candidates:
            body = bodies.get(envelope.id)
            if body is None:
                logger.warning("Body missing from fetch response",
                               extra={"sync_cycle_id": cycle_id, "message_uid": envelope.id})
                result.skipped += 1
                continue
            try:
                batch.append(self._extract(envelope, platform, body))
            except ExtractionError as e:
                track_error(e, ErrorStage.EXTRACT,
                            context={"message_uid": envelope.id, "platform": platform.value},
                            sync_cycle_id=cycle_id)
                result.skipped += 1
        result.extracted = len(batch)

        if result.degraded:
            logger.warning("Booking history unreadable, skipping write and notifications",
                           extra={"sync_cycle_id": cycle_id})
            return result

        reconciliation = reconcile(history, batch)
        result.inserted_ids = reconciliation.inserted_ids
        result.replaced_ids = reconciliation.replaced_ids

        if not reconciliation.changed:
            return result

        try:
            persisted = self.store.write(reconciliation.records)
        except StoreError as e:
            track_error(e, ErrorStage.STORAGE, sync_cycle_id=cycle_id)
            result.error = str(e)
            return result

        self.read_cache.update(persisted)
        result.written = True

        inserted = set(reconciliation.inserted_ids)
        new_records = [r for r in persisted if r.id in inserted]
        if self.dispatcher is not None and new_records:
            result.notifications = self.dispatcher.dispatch(new_records, sync_cycle_id=cycle_id)

        return result


def build_orchestrator(config: Optional[SyncConfig] = None, redis_client=None) -> SyncOrchestrator:
    """
    Wire an orchestrator from configuration.

    Raises:
        ConfigurationError: Production storage is configured without Redis
    """
    config = config or load_sync_config()

    store = get_booking_store(config, redis_client)
    read_cache = BookingReadCache(store, ttl=config.read_cache_ttl)
    subscriptions = get_subscription_store(config, redis_client)
    dispatcher = PushDispatcher.from_config(config, subscriptions)

    mailbox_factory = partial(
        ImapMailbox,
        config.email_host,
        config.email_port,
        config.email_user,
        config.email_password,
        mailbox=config.mailbox,
        timeout=config.connect_timeout,
    )
    lock_client = redis_client if redis_client is not None else get_redis_client(config.redis_url)
    return SyncOrchestrator(config, read_cache, mailbox_factory, dispatcher, lock_client=lock_client)


_orchestrator: Optional[SyncOrchestrator] = None
_orchestrator_lock = threading.Lock()


def get_orchestrator() -> SyncOrchestrator:
    """Process-wide orchestrator (one lock per worker process)."""
    global _orchestrator

    with _orchestrator_lock:
        if _orchestrator is None:
            _orchestrator = build_orchestrator()
        return _orchestrator


def reset_orchestrator() -> None:
    global _orchestrator
    with _orchestrator_lock:
        _orchestrator = None


def get_published_status() -> Optional[dict]:
    """Last status published by any process (None without Redis)."""
    return cache_get(STATUS_CACHE_KEY)

"""Error taxonomy and structured error tracking for the booking sync workflow.

This module provides:
- The exception hierarchy raised by the pipeline (configuration, mailbox,
  extraction, storage and notification failures)
- Automatic error classification by stage and type
- Retry decision support (only mailbox connectivity is retried)
- Integration with structured logging

Usage:
    from mailsync.error_tracking import SyncError, ErrorStage

    try:
        extract_booking(body, platform, subject, received_at)
    except Exception as e:
        error = SyncError.from_exception(e, ErrorStage.EXTRACT,
                                         context={'message_uid': uid})
        error.log(sync_cycle_id=cycle_id)
"""

import traceback
from enum import Enum
from typing import Any

from mailsync.logging_config import get_logger

logger = get_logger(__name__)


class BookingSyncError(Exception):
    """Base class for all booking sync failures."""


class ConfigurationError(BookingSyncError):
    """Missing or invalid configuration (e.g. mailbox credentials). Never retried."""


class MailboxConnectionError(BookingSyncError):
    """Mailbox unreachable, login rejected or timed out. Retried once."""


class ExtractionError(BookingSyncError):
    """A single message could not be parsed. The message is skipped."""

    def __init__(self, message: str, message_uid: str | None = None):
        super().__init__(message)
        self.message_uid = message_uid


class StoreError(BookingSyncError):
    """Booking or subscription store read/write failure."""


class NotificationError(BookingSyncError):
    """Delivery to a single push subscriber failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_expired(self) -> bool:
        """Push services answer 404/410 for subscriptions that no longer exist."""
        return self.status_code in (404, 410)


class ErrorStage(Enum):
    """Error stage classification for the sync workflow."""

    CONFIG = "config"  # Configuration / credential checks
    CONNECT = "connect"  # Mailbox connection and login
    SCAN = "scan"  # Header search and fetch
    FETCH = "fetch"  # Full body fetch
    EXTRACT = "extract"  # Content extraction
    STORAGE = "storage"  # Booking store read/write
    NOTIFY = "notify"  # Push delivery


class ErrorType(Enum):
    """Error type classification for retry and debugging."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTH_ERROR = "auth_error"
    PARSE_ERROR = "parse_error"
    VALIDATION = "validation"
    STORE_ERROR = "store_error"
    DELIVERY = "delivery"
    CONFIG = "config"
    UNKNOWN = "unknown"


class SyncError:
    """Structured error with logging.

    Attributes:
        stage: Error stage (where in workflow error occurred)
        error_type: Error type (for retry and debugging decisions)
        message: Human-readable error message
        exception: Original exception (if any)
        context: Additional context (message_uid, platform, etc.)
        is_retryable: Whether error should be retried
        stack_trace: Full stack trace string
    """

    def __init__(
        self,
        stage: ErrorStage,
        error_type: ErrorType,
        message: str,
        exception: Exception | None = None,
        context: dict[str, Any] | None = None,
        is_retryable: bool = False,
    ):
        self.stage = stage
        self.error_type = error_type
        self.message = message
        self.exception = exception
        self.context = context or {}
        self.is_retryable = is_retryable
        self.stack_trace = None

        if exception:
            self.stack_trace = "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            )

    def log(self, sync_cycle_id: str | None = None, level: str = "error") -> None:
        """Write the error to the structured log.

        Args:
            sync_cycle_id: Sync cycle identifier (optional)
            level: Logger method to use ('error' or 'warning')
        """
        log_method = getattr(logger, level)
        log_method(
            f"[{self.stage.value}/{self.error_type.value}] {self.message}",
            extra={
                "sync_cycle_id": sync_cycle_id,
                "platform": self.context.get("platform"),
                "message_uid": self.context.get("message_uid"),
            },
            exc_info=self.exception if level == "error" else None,
        )

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "error_type": self.error_type.value,
            "message": self.message,
            "is_retryable": self.is_retryable,
            "context": self.context,
        }

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        stage: ErrorStage,
        context: dict[str, Any] | None = None,
    ) -> "SyncError":
        """Auto-classify error from exception.

        Pipeline exceptions map directly to their type; anything else is
        classified from its name and message. Only connectivity-class errors
        are retryable.

        Args:
            exception: Exception object to classify
            stage: Error stage where exception occurred
            context: Additional context dict

        Returns:
            SyncError instance with auto-classified type and retry flag
        """
        error_type = ErrorType.UNKNOWN
        is_retryable = False

        error_str = str(exception).lower()
        exception_name = type(exception).__name__

        if isinstance(exception, ConfigurationError):
            error_type = ErrorType.CONFIG

        elif isinstance(exception, StoreError):
            error_type = ErrorType.STORE_ERROR

        elif isinstance(exception, NotificationError):
            error_type = ErrorType.DELIVERY

        elif "timeout" in error_str or exception_name in ["TimeoutError", "timeout"]:
            error_type = ErrorType.TIMEOUT
            is_retryable = True

        elif isinstance(exception, MailboxConnectionError):
            error_type = ErrorType.NETWORK
            is_retryable = True

        elif "auth" in error_str or "login" in error_str or "credentials" in error_str:
            error_type = ErrorType.AUTH_ERROR

        elif (
            isinstance(exception, ConnectionError)
            or "connection" in error_str
            or "network" in error_str
        ):
            error_type = ErrorType.NETWORK
            is_retryable = True

        elif exception_name in ["ValueError", "ValidationError"]:
            error_type = ErrorType.VALIDATION

        elif stage == ErrorStage.EXTRACT:
            error_type = ErrorType.PARSE_ERROR

        return cls(
            stage=stage,
            error_type=error_type,
            message=str(exception) or exception_name,
            exception=exception,
            context=context,
            is_retryable=is_retryable,
        )


def track_error(
    exception: Exception,
    stage: ErrorStage,
    context: dict[str, Any] | None = None,
    sync_cycle_id: str | None = None,
    level: str = "error",
) -> SyncError:
    """Classify an exception and write it to the structured log.

    Returns:
        The classified SyncError (callers use ``is_retryable`` for retry decisions)
    """
    error = SyncError.from_exception(exception, stage, context)
    error.log(sync_cycle_id=sync_cycle_id, level=level)
    return error

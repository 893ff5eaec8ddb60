"""Structured logging for the booking sync workflow.

Every pipeline module logs through ``get_logger(__name__)``. Records can
carry three context fields via ``extra={}``:

- sync_cycle_id: short id of the sync cycle (one per trigger)
- platform: booking platform tag (Playo, Hudle, ...)
- message_uid: IMAP UID of the message being processed

Output goes to the console (container logs) and to two rotating files
under LOG_DIR: booking_sync.log (everything) and booking_errors.log.

Usage:
    from mailsync.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Body fetched", extra={'sync_cycle_id': cycle_id, 'message_uid': uid})
"""

import logging
import os
from logging.handlers import RotatingFileHandler

# In Docker: /app/logs (mounted volume)
LOG_DIR = os.getenv("LOG_DIR", "/app/logs")

CONTEXT_FIELDS = ("sync_cycle_id", "platform", "message_uid")

CONSOLE_FORMAT = "[%(levelname)s] [cycle:%(sync_cycle_id)s] %(message)s"
FILE_FORMAT = (
    "[%(asctime)s] [%(levelname)s] [%(name)s] "
    "[cycle:%(sync_cycle_id)s platform:%(platform)s uid:%(message_uid)s] %(message)s"
)

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 30


class StructuredFormatter(logging.Formatter):
    """Formatter that fills missing context fields with None."""

    def format(self, record):
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, None)
        return super().format(record)


def _rotating_handler(log_dir: str, filename: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter(FILE_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger.

    Handlers are attached once per logger name; later calls return the
    same logger untouched. The console level comes from LOG_LEVEL
    (default INFO); files always record DEBUG and up.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logging.Logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    log_dir = os.getenv("LOG_DIR", LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    console.setFormatter(StructuredFormatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    logger.addHandler(_rotating_handler(log_dir, "booking_sync.log", logging.DEBUG))
    logger.addHandler(_rotating_handler(log_dir, "booking_errors.log", logging.ERROR))

    return logger

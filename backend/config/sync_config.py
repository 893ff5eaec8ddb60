"""
Sync Configuration Management
Handles environment variables, validation, and mailbox/storage/push settings
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load from .env in the project root (Docker env vars take precedence)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=False)


class AppEnv(str, Enum):
    """Deployment environments"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass
class SyncConfig:
    """Mailbox sync configuration object"""
    email_user: str = ""
    email_password: str = ""
    email_host: str = "imap.gmail.com"
    email_port: int = 993
    mailbox: str = "INBOX"
    connect_timeout: int = 15
    lookback_days: int = 7
    deep_lookback_days: int = 90
    body_chunk_size: int = 50
    retry_delay_seconds: float = 10.0
    sync_interval_seconds: int = 120
    retention_cap: int = 1000
    read_cache_ttl: float = 30.0
    app_env: AppEnv = AppEnv.DEVELOPMENT
    redis_url: Optional[str] = None
    data_dir: str = "data"
    vapid_public_key: Optional[str] = None
    vapid_private_key: Optional[str] = None
    vapid_subject: str = "mailto:alerts@example.com"
    local_timezone: str = "Asia/Kolkata"

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.validate()

    def validate(self):
        """Validate sync configuration (credentials are checked per cycle, not here)"""
        if self.email_port <= 0:
            raise ValueError("EMAIL_PORT must be greater than 0")

        if self.lookback_days <= 0 or self.deep_lookback_days <= 0:
            raise ValueError("Lookback windows must be greater than 0 days")

        if self.deep_lookback_days < self.lookback_days:
            raise ValueError("SYNC_DEEP_LOOKBACK_DAYS must be >= SYNC_LOOKBACK_DAYS")

        if self.body_chunk_size <= 0:
            raise ValueError("SYNC_BODY_CHUNK_SIZE must be greater than 0")

        if self.retry_delay_seconds < 0:
            raise ValueError("SYNC_RETRY_DELAY_SECONDS must be non-negative")

        if self.sync_interval_seconds <= 0:
            raise ValueError("SYNC_INTERVAL_SECONDS must be greater than 0")

        if self.retention_cap <= 0:
            raise ValueError("BOOKINGS_RETENTION_CAP must be greater than 0")

        try:
            ZoneInfo(self.local_timezone)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError(f"Unknown LOCAL_TIMEZONE: {self.local_timezone}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.email_user and self.email_password)

    @property
    def is_dev(self) -> bool:
        return self.app_env == AppEnv.DEVELOPMENT

    @property
    def push_enabled(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    @property
    def bookings_key(self) -> str:
        """Redis key / file stem for the booking ledger."""
        return "bookings_test" if self.is_dev else "bookings"

    @property
    def subscriptions_key(self) -> str:
        return "push_subscriptions_test" if self.is_dev else "push_subscriptions"

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone the facilities (and their booking emails) live in."""
        return ZoneInfo(self.local_timezone)

    def lookback_for(self, deep: bool) -> int:
        return self.deep_lookback_days if deep else self.lookback_days


def clean_vapid_key(key: Optional[str], strip_padding: bool = False) -> Optional[str]:
    """Trim whitespace and surrounding quotes (and base64 padding) from a VAPID key."""
    if not key:
        return None
    cleaned = re.sub(r'^["\']|["\']$', '', key.strip())
    if strip_padding:
        cleaned = cleaned.rstrip('=')
    return cleaned or None


def load_sync_config() -> SyncConfig:
    """
    Load sync configuration from environment variables.

    Environment Variables:
    - EMAIL_USER / EMAIL_PASSWORD: Mailbox credentials (required to sync)
    - EMAIL_HOST: IMAP host (default: imap.gmail.com)
    - EMAIL_PORT: IMAP SSL port (default: 993)
    - EMAIL_MAILBOX: Folder to scan (default: INBOX)
    - EMAIL_CONNECT_TIMEOUT: Connect/auth timeout in seconds (default: 15)
    - SYNC_LOOKBACK_DAYS: Default scan window (default: 7)
    - SYNC_DEEP_LOOKBACK_DAYS: Deep scan window (default: 90)
    - SYNC_BODY_CHUNK_SIZE: Messages per body fetch (default: 50)
    - SYNC_RETRY_DELAY_SECONDS: Delay before the connection retry (default: 10)
    - SYNC_INTERVAL_SECONDS: Beat interval for scheduled syncs (default: 120)
    - BOOKINGS_RETENTION_CAP: Maximum stored bookings (default: 1000)
    - BOOKINGS_READ_CACHE_TTL: Read cache freshness in seconds (default: 30)
    - APP_ENV: development|production (default: development)
    - REDIS_URL (or KV_URL): Redis connection URL for production storage
    - DATA_DIR: Directory for JSON storage in development (default: data)
    - VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY / VAPID_SUBJECT: Web push settings
    - LOCAL_TIMEZONE: Facility timezone for relative dates (default: Asia/Kolkata)

    Returns:
        SyncConfig object
    """
    env_str = os.getenv("APP_ENV", AppEnv.DEVELOPMENT.value).strip().lower()
    try:
        app_env = AppEnv(env_str)
    except ValueError:
        raise ValueError(
            f"Invalid APP_ENV: {env_str}. "
            f"Must be one of: {', '.join([e.value for e in AppEnv])}"
        )

    return SyncConfig(
        email_user=os.getenv("EMAIL_USER", "").strip(),
        email_password=os.getenv("EMAIL_PASSWORD", "").strip(),
        email_host=os.getenv("EMAIL_HOST", "imap.gmail.com").strip(),
        email_port=int(os.getenv("EMAIL_PORT", "993")),
        mailbox=os.getenv("EMAIL_MAILBOX", "INBOX"),
        connect_timeout=int(os.getenv("EMAIL_CONNECT_TIMEOUT", "15")),
        lookback_days=int(os.getenv("SYNC_LOOKBACK_DAYS", "7")),
        deep_lookback_days=int(os.getenv("SYNC_DEEP_LOOKBACK_DAYS", "90")),
        body_chunk_size=int(os.getenv("SYNC_BODY_CHUNK_SIZE", "50")),
        retry_delay_seconds=float(os.getenv("SYNC_RETRY_DELAY_SECONDS", "10")),
        sync_interval_seconds=int(os.getenv("SYNC_INTERVAL_SECONDS", "120")),
        retention_cap=int(os.getenv("BOOKINGS_RETENTION_CAP", "1000")),
        read_cache_ttl=float(os.getenv("BOOKINGS_READ_CACHE_TTL", "30")),
        app_env=app_env,
        redis_url=os.getenv("REDIS_URL") or os.getenv("KV_URL") or None,
        data_dir=os.getenv("DATA_DIR", "data"),
        vapid_public_key=clean_vapid_key(os.getenv("VAPID_PUBLIC_KEY"), strip_padding=True),
        vapid_private_key=clean_vapid_key(os.getenv("VAPID_PRIVATE_KEY")),
        vapid_subject=os.getenv("VAPID_SUBJECT", "mailto:alerts@example.com"),
        local_timezone=os.getenv("LOCAL_TIMEZONE", "Asia/Kolkata").strip(),
    )

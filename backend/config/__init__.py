"""Backend configuration module"""

from .sync_config import (
    AppEnv,
    SyncConfig,
    clean_vapid_key,
    load_sync_config,
)

__all__ = [
    "AppEnv",
    "SyncConfig",
    "clean_vapid_key",
    "load_sync_config",
]

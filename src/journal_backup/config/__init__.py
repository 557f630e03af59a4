"""Configuration package.

Usage:
    from journal_backup.config import load_config, JsonSettingsStore
"""

from journal_backup.config.loader import default_config, load_config
from journal_backup.config.models import (
    AppSettings,
    BackupFrequency,
    BackupSettings,
    DestinationMode,
    JournalConfig,
    Platform,
    StorageConfig,
)
from journal_backup.config.store import JsonSettingsStore

__all__ = [
    "load_config",
    "default_config",
    "AppSettings",
    "BackupSettings",
    "BackupFrequency",
    "DestinationMode",
    "JournalConfig",
    "Platform",
    "StorageConfig",
    "JsonSettingsStore",
]

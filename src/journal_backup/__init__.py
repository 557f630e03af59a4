"""journal-backup: Backup, restore, and scheduled export of journal entries.

Serializes every journal entry into a versioned JSON envelope, optionally
zips it, routes it to local storage, a share sheet, or a browser download,
and merges backups back in without overwriting existing entries.

Usage:
    from journal_backup import BackupService, BackupKind, build_service, open_store
    from journal_backup import load_config, run_background_backup
"""

__version__ = "0.1.0"

# Adapters
from journal_backup.adapters.base import BackupLogStore, RecordStore, SettingsStore
from journal_backup.adapters.memory import InMemoryStore
from journal_backup.adapters.sqlite import AsyncSqliteStore

# Backup engine
from journal_backup.backup.models import (
    BackupEnvelope,
    BackupKind,
    BackupLogEntry,
    JournalRecord,
    RestoreOutcome,
)
from journal_backup.backup.service import BackupService

# Config
from journal_backup.config.loader import default_config, load_config
from journal_backup.config.models import (
    AppSettings,
    BackupFrequency,
    BackupSettings,
    DestinationMode,
    JournalConfig,
    Platform,
)

# Errors
from journal_backup.errors import (
    BackupFailedError,
    JournalBackupError,
    RestoreFailedError,
)

# Factory
from journal_backup.factory import build_service, open_store

# Background tasks
from journal_backup.tasks.background import (
    BackgroundResult,
    BackupTaskManager,
    run_background_backup,
)

__all__ = [
    # Adapters
    "RecordStore",
    "BackupLogStore",
    "SettingsStore",
    "InMemoryStore",
    "AsyncSqliteStore",
    # Backup engine
    "BackupService",
    "BackupKind",
    "BackupEnvelope",
    "BackupLogEntry",
    "JournalRecord",
    "RestoreOutcome",
    # Config
    "load_config",
    "default_config",
    "JournalConfig",
    "AppSettings",
    "BackupSettings",
    "BackupFrequency",
    "DestinationMode",
    "Platform",
    # Errors
    "JournalBackupError",
    "BackupFailedError",
    "RestoreFailedError",
    # Factory
    "build_service",
    "open_store",
    # Background tasks
    "BackgroundResult",
    "BackupTaskManager",
    "run_background_backup",
]

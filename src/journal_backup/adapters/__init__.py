"""Storage adapters package.

Provides the capability Protocols the backup engine consumes and their
concrete implementations: SQLite (SQLAlchemy async), in-memory, and the
local filesystem.

Usage:
    from journal_backup.adapters import RecordStore, AsyncSqliteStore, InMemoryStore
"""

from journal_backup.adapters.base import (
    Archiver,
    BackupLogStore,
    BlobStore,
    DownloadSink,
    PeriodicScheduler,
    PermissionStatus,
    RecordStore,
    SettingsStore,
    ShareSink,
)
from journal_backup.adapters.files import LocalBlobStore, ZipArchiver
from journal_backup.adapters.memory import InMemoryStore
from journal_backup.adapters.sqlite import AsyncSqliteStore

__all__ = [
    "RecordStore",
    "BackupLogStore",
    "SettingsStore",
    "BlobStore",
    "ShareSink",
    "DownloadSink",
    "Archiver",
    "PeriodicScheduler",
    "PermissionStatus",
    "LocalBlobStore",
    "ZipArchiver",
    "InMemoryStore",
    "AsyncSqliteStore",
]

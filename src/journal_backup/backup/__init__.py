"""Backup and restore of journal entries.

Usage:
    from journal_backup.backup import BackupService, BackupKind
"""

from journal_backup.backup.archiver import ArchiverAdapter, is_compressed
from journal_backup.backup.models import (
    BackupEnvelope,
    BackupKind,
    BackupLogEntry,
    BackupStatus,
    EntrySchema,
    JournalRecord,
    RestoreOutcome,
)
from journal_backup.backup.router import Route, SinkRouter
from journal_backup.backup.service import BackupService

__all__ = [
    "ArchiverAdapter",
    "is_compressed",
    "BackupEnvelope",
    "BackupKind",
    "BackupLogEntry",
    "BackupStatus",
    "EntrySchema",
    "JournalRecord",
    "RestoreOutcome",
    "Route",
    "SinkRouter",
    "BackupService",
]

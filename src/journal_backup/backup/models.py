"""Backup data models: journal records, the envelope, and audit log entries.

Usage:
    from journal_backup.backup.models import JournalRecord, BackupEnvelope

    record = JournalRecord(key="2024-01-15", body="<p>A</p>")
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BackupKind(str, Enum):
    """How a backup or restore was started."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"


class BackupStatus(str, Enum):
    """Outcome of a backup or restore attempt."""

    SUCCESS = "success"
    FAILED = "failed"


class EntrySchema(str, Enum):
    """Field-name convention used by a serialized entry."""

    CURRENT = "current"   # entry_date / html_body / created_at / updated_at
    LEGACY = "legacy"     # date / content / createdAt / updatedAt


class JournalRecord(BaseModel):
    """One journal entry.  ``key`` is a unique ``YYYY-MM-DD`` date."""

    id: int | None = None
    key: str
    body: str
    created_at: datetime | None = None  # None = store assigns now
    updated_at: datetime | None = None

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        try:
            parsed = date.fromisoformat(value)
        except ValueError as e:
            raise ValueError(f"key must be YYYY-MM-DD, got {value!r}") from e
        if parsed.isoformat() != value:
            raise ValueError(f"key must be YYYY-MM-DD, got {value!r}")
        return value


class BackupEnvelope(BaseModel):
    """Versioned container written to ``.json`` (or inside ``.zip``) files.

    ``entries`` stay raw dicts: each may use current or legacy field names
    and is normalized one at a time during restore.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str | None = None
    timestamp: str | None = None
    total_entries: int | None = Field(default=None, alias="totalEntries")
    entries: list[Any]
    backup_settings: dict[str, Any] | None = Field(default=None, alias="backupSettings")


class BackupLogEntry(BaseModel):
    """Audit record: one per backup or restore attempt."""

    id: int | None = None
    location: str
    kind: BackupKind
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    size_bytes: int | None = None
    status: BackupStatus = BackupStatus.SUCCESS


class RestoreOutcome(BaseModel):
    """Per-item accounting for a restore run."""

    restored: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def summary(self) -> str:
        """Log-friendly summary, e.g. ``"restored (1 new, 0 skipped)"``."""
        return f"restored ({self.restored} new, {self.skipped} skipped)"

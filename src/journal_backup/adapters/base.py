"""Collaborator protocol definitions.

The backup engine never talks to a database, filesystem, share dialog, or OS
scheduler directly.  It consumes the capabilities below, and concrete
adapters (``sqlite``, ``memory``, ``files``, ``tasks.scheduler``) implement
them.  All I/O methods are ``async def``.

Usage:
    from journal_backup.adapters.base import RecordStore

    async def latest(store: RecordStore) -> str | None:
        records = await store.get_all()
        return records[0].key if records else None
"""

from collections.abc import Awaitable, Callable
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from journal_backup.backup.models import BackupLogEntry, JournalRecord
    from journal_backup.config.models import AppSettings, BackupSettings


class RecordStore(Protocol):
    """Date-keyed journal table: at most one record per ``YYYY-MM-DD`` key.

    Read methods degrade to empty/None/0 when storage is unavailable rather
    than raising.  ``durable`` is ``False`` for stand-in stores, which puts
    the backup engine into no-store mode.
    """

    @property
    def durable(self) -> bool:
        """Whether records survive a restart."""
        ...

    async def create(
        self,
        key: str,
        body: str,
        created_at: Any = None,
        updated_at: Any = None,
    ) -> "JournalRecord":
        """Insert a record for ``key``.

        Raises:
            DuplicateKeyError: If a record already exists for ``key``.
        """
        ...

    async def update(self, record_id: int, body: str) -> "JournalRecord":
        """Replace a record's body and bump ``updated_at``.

        Raises:
            NotFoundError: If ``record_id`` does not exist.
        """
        ...

    async def get_by_key(self, key: str) -> "JournalRecord | None":
        """Return the record for a date key, or None."""
        ...

    async def get_all(self) -> "list[JournalRecord]":
        """Return every record ordered by key descending."""
        ...

    async def get_by_month(self, year: int, month: int) -> "list[JournalRecord]":
        """Return records in a calendar month, key descending."""
        ...

    async def get_by_month_day(self, month_day: str) -> "list[JournalRecord]":
        """Return records whose key ends with ``MM-DD`` across all years."""
        ...

    async def delete(self, record_id: int) -> None:
        """Delete a record by id (no error if absent)."""
        ...

    async def count(self) -> int:
        """Return the number of records."""
        ...


class BackupLogStore(Protocol):
    """Append-only audit table of backup and restore attempts."""

    async def append_log(self, entry: "BackupLogEntry") -> "BackupLogEntry":
        """Persist ``entry`` and return it with its assigned id."""
        ...

    async def recent_logs(self, limit: int = 20) -> "list[BackupLogEntry]":
        """Return up to ``limit`` entries, newest first."""
        ...


class SettingsStore(Protocol):
    """Typed key-value preferences over ``AppSettings`` and ``BackupSettings``.

    Reads fall back to defaults on failure; writes raise ``SettingsError``.
    """

    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def load_app_settings(self) -> "AppSettings":
        ...

    async def load_backup_settings(self) -> "BackupSettings":
        ...


class BlobStore(Protocol):
    """Path-addressed byte storage (the device filesystem)."""

    async def write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to ``path``, creating parent directories."""
        ...

    async def read(self, path: Path) -> bytes:
        ...

    async def delete(self, path: Path) -> None:
        """Delete a file or directory tree.  Missing paths are not an error."""
        ...

    async def list(self, path: Path) -> list[str]:
        """Return the entry names in a directory, sorted.  A missing directory lists as empty."""
        ...

    async def exists(self, path: Path) -> bool:
        ...

    async def size(self, path: Path) -> int:
        ...


class ShareSink(Protocol):
    """System share sheet."""

    async def is_available(self) -> bool:
        ...

    async def offer(self, path: Path, mime_type: str, title: str = "") -> None:
        """Offer the file at ``path`` to the user."""
        ...


class DownloadSink(Protocol):
    """Client-side download for platforms without a filesystem."""

    async def download(self, filename: str, data: bytes, mime_type: str) -> None:
        ...


class Archiver(Protocol):
    """In-memory archive codec."""

    def pack(self, files: dict[str, bytes]) -> bytes:
        ...

    def unpack(self, blob: bytes) -> dict[str, bytes]:
        ...


class PermissionStatus(str, Enum):
    """Host answer to "may this app run background tasks?"."""

    AVAILABLE = "available"
    DENIED = "denied"
    RESTRICTED = "restricted"


class PeriodicScheduler(Protocol):
    """OS-level periodic task registration.

    ``interval`` is a minimum hint: the host may delay, coalesce, or skip
    invocations.
    """

    async def register(
        self,
        name: str,
        interval: timedelta,
        callback: Callable[[], Awaitable[Any]],
    ) -> None:
        ...

    async def unregister(self, name: str) -> None:
        ...

    async def is_registered(self, name: str) -> bool:
        ...

    async def permission_status(self) -> PermissionStatus:
        ...

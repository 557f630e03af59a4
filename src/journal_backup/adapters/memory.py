"""In-memory record and backup-log store.

``InMemoryStore`` implements both ``RecordStore`` and ``BackupLogStore``.
Each instance owns its own data, so tests (and the no-store fallback) never
share state through a module global.

Usage:
    store = InMemoryStore()                 # durable, for tests
    fallback = InMemoryStore(durable=False) # no-store mode stand-in
"""

from datetime import datetime, timezone

from journal_backup.backup.models import BackupLogEntry, JournalRecord
from journal_backup.errors import DuplicateKeyError, NotFoundError
from journal_backup.formatting import as_utc


class InMemoryStore:
    """Dict-backed store keyed by record id.

    Args:
        durable: Reported through ``durable``.  ``False`` marks the store as
            a stand-in, which puts the backup engine into no-store mode.
        records: Optional initial records (ids assigned if missing).
    """

    def __init__(
        self,
        durable: bool = True,
        records: list[JournalRecord] | None = None,
    ) -> None:
        self._durable = durable
        self._records: dict[int, JournalRecord] = {}
        self._logs: list[BackupLogEntry] = []
        self._next_id = 1
        self._next_log_id = 1
        for record in records or []:
            self._insert(record)

    @property
    def durable(self) -> bool:
        return self._durable

    def _insert(self, record: JournalRecord) -> JournalRecord:
        if any(r.key == record.key for r in self._records.values()):
            raise DuplicateKeyError(record.key)
        now = datetime.now(timezone.utc)
        created_at = as_utc(record.created_at or now)
        updated_at = max(as_utc(record.updated_at or now), created_at)
        stored = record.model_copy(
            update={"id": self._next_id, "created_at": created_at, "updated_at": updated_at}
        )
        self._records[self._next_id] = stored
        self._next_id += 1
        return stored

    @staticmethod
    def _sorted(records) -> list[JournalRecord]:
        return sorted(records, key=lambda r: r.key, reverse=True)

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def create(self, key, body, created_at=None, updated_at=None) -> JournalRecord:
        return self._insert(
            JournalRecord(key=key, body=body, created_at=created_at, updated_at=updated_at)
        )

    async def update(self, record_id: int, body: str) -> JournalRecord:
        existing = self._records.get(record_id)
        if existing is None:
            raise NotFoundError(f"Entry not found: {record_id}")
        updated = existing.model_copy(
            update={"body": body, "updated_at": datetime.now(timezone.utc)}
        )
        self._records[record_id] = updated
        return updated

    async def get_by_key(self, key: str) -> JournalRecord | None:
        for record in self._records.values():
            if record.key == key:
                return record
        return None

    async def get_all(self) -> list[JournalRecord]:
        return self._sorted(self._records.values())

    async def get_by_month(self, year: int, month: int) -> list[JournalRecord]:
        prefix = f"{year:04d}-{month:02d}-"
        return self._sorted(r for r in self._records.values() if r.key.startswith(prefix))

    async def get_by_month_day(self, month_day: str) -> list[JournalRecord]:
        return self._sorted(r for r in self._records.values() if r.key[5:] == month_day)

    async def delete(self, record_id: int) -> None:
        self._records.pop(record_id, None)

    async def count(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # BackupLogStore
    # ------------------------------------------------------------------

    async def append_log(self, entry: BackupLogEntry) -> BackupLogEntry:
        stored = entry.model_copy(update={"id": self._next_log_id})
        self._next_log_id += 1
        self._logs.append(stored)
        return stored

    async def recent_logs(self, limit: int = 20) -> list[BackupLogEntry]:
        ordered = sorted(self._logs, key=lambda e: (e.occurred_at, e.id), reverse=True)
        return ordered[:limit]

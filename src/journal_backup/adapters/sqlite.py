"""Async SQLite journal store.

Provides ``AsyncSqliteStore``, an implementation of both ``RecordStore`` and
``BackupLogStore`` using SQLAlchemy's async engine with the ``aiosqlite``
driver.  Queries are raw SQL via ``text()``.

Usage:
    from journal_backup.adapters.sqlite import AsyncSqliteStore

    store = AsyncSqliteStore("journal.db")
    await store.initialize()
    record = await store.create("2024-01-15", "<p>Hello</p>")
    await store.close()
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from journal_backup.backup.models import (
    BackupKind,
    BackupLogEntry,
    BackupStatus,
    JournalRecord,
)
from journal_backup.errors import DuplicateKeyError, NotFoundError
from journal_backup.formatting import as_utc

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS journal_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        entry_date TEXT NOT NULL,
        html_body TEXT NOT NULL,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP NOT NULL,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS journal_entries_entry_date_unique
        ON journal_entries (entry_date)
    """,
    """
    CREATE TABLE IF NOT EXISTS backup_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        file_uri TEXT NOT NULL,
        run_type TEXT NOT NULL,
        run_time TEXT DEFAULT CURRENT_TIMESTAMP NOT NULL,
        size_bytes INTEGER,
        status TEXT DEFAULT 'success' NOT NULL
    )
    """,
]


def create_async_engine_sqlite(database: str | Path, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine for a SQLite file.

    Args:
        database: Path to the SQLite file, or ``":memory:"``.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Example:
        engine = create_async_engine_sqlite("journal.db", echo=True)
    """
    defaults: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}
    return create_async_engine(f"sqlite+aiosqlite:///{database}", **merged)


def _timestamp(value: datetime) -> str:
    return as_utc(value).isoformat()


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


class AsyncSqliteStore:
    """Async SQLite implementation of ``RecordStore`` and ``BackupLogStore``.

    Args:
        database: Path to the SQLite database file.
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine_sqlite``.
    """

    def __init__(self, database: str | Path, **engine_kwargs: Any) -> None:
        self._database = str(database)
        self._engine: AsyncEngine = create_async_engine_sqlite(self._database, **engine_kwargs)

    @property
    def durable(self) -> bool:
        return True

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        if self._database != ":memory:":
            Path(self._database).parent.mkdir(parents=True, exist_ok=True)
        async with self._engine.begin() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(text(statement))

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        if self._engine:
            await self._engine.dispose()

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _record(row: dict) -> JournalRecord:
        return JournalRecord(
            id=row["id"],
            key=row["entry_date"],
            body=row["html_body"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    @staticmethod
    def _log_entry(row: dict) -> BackupLogEntry:
        return BackupLogEntry(
            id=row["id"],
            location=row["file_uri"],
            kind=BackupKind(row["run_type"]),
            occurred_at=_parse_timestamp(row["run_time"]),
            size_bytes=row["size_bytes"],
            status=BackupStatus(row["status"]),
        )

    async def _fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        async with self._engine.connect() as conn:
            result = await conn.execute(text(sql), params or {})
            col_names = list(result.keys())
            return [dict(zip(col_names, row)) for row in result.fetchall()]

    async def _select_records(
        self,
        where: str = "",
        params: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[JournalRecord]:
        """Select records (key descending); storage errors degrade to ``[]``."""
        sql = f"SELECT * FROM journal_entries{where} ORDER BY entry_date DESC"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        try:
            rows = await self._fetch(sql, params)
        except SQLAlchemyError as e:
            logger.error(f"Error reading journal entries: {e}")
            return []
        return [self._record(row) for row in rows]

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def create(
        self,
        key: str,
        body: str,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> JournalRecord:
        """Insert a record; ``updated_at`` is clamped to ``>= created_at``.

        Raises:
            DuplicateKeyError: If ``key`` already has a record.
        """
        record = JournalRecord(key=key, body=body, created_at=created_at, updated_at=updated_at)
        now = datetime.now(timezone.utc)
        created = as_utc(record.created_at or now)
        updated = max(as_utc(record.updated_at or now), created)

        query = text("""
            INSERT INTO journal_entries (entry_date, html_body, created_at, updated_at)
            VALUES (:entry_date, :html_body, :created_at, :updated_at)
            RETURNING *
        """)
        params = {
            "entry_date": record.key,
            "html_body": record.body,
            "created_at": _timestamp(created),
            "updated_at": _timestamp(updated),
        }

        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(query, params)
                row = result.fetchone()
                col_names = list(result.keys())
        except IntegrityError as e:
            raise DuplicateKeyError(record.key) from e

        return self._record(dict(zip(col_names, row)))

    async def update(self, record_id: int, body: str) -> JournalRecord:
        """Replace a record's body.

        Raises:
            NotFoundError: If no record has ``record_id``.
        """
        query = text("""
            UPDATE journal_entries
            SET html_body = :html_body, updated_at = :updated_at
            WHERE id = :id
            RETURNING *
        """)
        params = {
            "html_body": body,
            "updated_at": _timestamp(datetime.now(timezone.utc)),
            "id": record_id,
        }

        async with self._engine.begin() as conn:
            result = await conn.execute(query, params)
            row = result.fetchone()
            if row is None:
                raise NotFoundError(f"Entry not found: {record_id}")
            col_names = list(result.keys())
            return self._record(dict(zip(col_names, row)))

    async def get_by_key(self, key: str) -> JournalRecord | None:
        records = await self._select_records(
            " WHERE entry_date = :entry_date", {"entry_date": key}, limit=1
        )
        return records[0] if records else None

    async def get_all(self) -> list[JournalRecord]:
        return await self._select_records()

    async def get_by_month(self, year: int, month: int) -> list[JournalRecord]:
        return await self._select_records(
            " WHERE entry_date >= :start AND entry_date <= :end",
            {"start": f"{year:04d}-{month:02d}-01", "end": f"{year:04d}-{month:02d}-31"},
        )

    async def get_by_month_day(self, month_day: str) -> list[JournalRecord]:
        return await self._select_records(
            " WHERE substr(entry_date, 6) = :month_day", {"month_day": month_day}
        )

    async def delete(self, record_id: int) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                text("DELETE FROM journal_entries WHERE id = :id"), {"id": record_id}
            )

    async def count(self) -> int:
        try:
            rows = await self._fetch("SELECT count(*) AS total FROM journal_entries")
        except SQLAlchemyError as e:
            logger.error(f"Error counting journal entries: {e}")
            return 0
        return rows[0]["total"]

    # ------------------------------------------------------------------
    # BackupLogStore
    # ------------------------------------------------------------------

    async def append_log(self, entry: BackupLogEntry) -> BackupLogEntry:
        query = text("""
            INSERT INTO backup_logs (file_uri, run_type, run_time, size_bytes, status)
            VALUES (:file_uri, :run_type, :run_time, :size_bytes, :status)
            RETURNING *
        """)
        params = {
            "file_uri": entry.location,
            "run_type": entry.kind.value,
            "run_time": _timestamp(entry.occurred_at),
            "size_bytes": entry.size_bytes,
            "status": entry.status.value,
        }

        async with self._engine.begin() as conn:
            result = await conn.execute(query, params)
            row = result.fetchone()
            col_names = list(result.keys())
            return self._log_entry(dict(zip(col_names, row)))

    async def recent_logs(self, limit: int = 20) -> list[BackupLogEntry]:
        rows = await self._fetch(
            "SELECT * FROM backup_logs ORDER BY run_time DESC, id DESC LIMIT :limit",
            {"limit": limit},
        )
        return [self._log_entry(row) for row in rows]

"""Tests for the record/backup-log stores (in-memory and SQLite).

The same behavioural checks run against both implementations.
"""

from datetime import datetime, timedelta, timezone

import pytest

from journal_backup.adapters.memory import InMemoryStore
from journal_backup.adapters.sqlite import AsyncSqliteStore
from journal_backup.backup.models import BackupKind, BackupLogEntry, BackupStatus, JournalRecord
from journal_backup.errors import DuplicateKeyError, NotFoundError

T = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryStore()
        return
    sqlite_store = AsyncSqliteStore(tmp_path / "journal.db")
    await sqlite_store.initialize()
    yield sqlite_store
    await sqlite_store.close()


class TestRecordStore:
    """RecordStore contract: one record per date key."""

    async def test_create_and_get(self, store):
        created = await store.create("2024-01-15", "<p>A</p>", T, T)

        assert created.id is not None
        assert created.created_at == T
        fetched = await store.get_by_key("2024-01-15")
        assert fetched == created

    async def test_duplicate_key_raises(self, store):
        await store.create("2024-01-15", "first")

        with pytest.raises(DuplicateKeyError) as exc_info:
            await store.create("2024-01-15", "second")

        assert exc_info.value.key == "2024-01-15"
        assert await store.count() == 1
        assert (await store.get_by_key("2024-01-15")).body == "first"

    async def test_updated_at_clamped(self, store):
        record = await store.create("2024-01-15", "x", T, T - timedelta(hours=1))
        assert record.updated_at == T

    async def test_defaults_to_now(self, store):
        before = datetime.now(timezone.utc)
        record = await store.create("2024-01-15", "x")
        assert record.created_at >= before - timedelta(seconds=1)
        assert record.updated_at >= record.created_at

    async def test_get_all_key_descending(self, store):
        for key in ("2024-01-14", "2024-02-01", "2023-12-31"):
            await store.create(key, key)
        assert [r.key for r in await store.get_all()] == [
            "2024-02-01",
            "2024-01-14",
            "2023-12-31",
        ]

    async def test_get_by_month(self, store):
        for key in ("2024-01-14", "2024-01-31", "2024-02-01"):
            await store.create(key, key)
        assert [r.key for r in await store.get_by_month(2024, 1)] == ["2024-01-31", "2024-01-14"]

    async def test_get_by_month_day(self, store):
        for key in ("2022-01-15", "2023-01-15", "2023-01-16"):
            await store.create(key, key)
        assert [r.key for r in await store.get_by_month_day("01-15")] == [
            "2023-01-15",
            "2022-01-15",
        ]

    async def test_update(self, store):
        created = await store.create("2024-01-15", "old", T, T)
        updated = await store.update(created.id, "new")
        assert updated.body == "new"
        assert updated.updated_at > T

    async def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.update(999, "x")

    async def test_delete_and_count(self, store):
        created = await store.create("2024-01-15", "x")
        assert await store.count() == 1
        await store.delete(created.id)
        assert await store.count() == 0
        assert await store.get_by_key("2024-01-15") is None

    async def test_missing_key_is_none(self, store):
        assert await store.get_by_key("1999-01-01") is None

    async def test_durable(self, store):
        assert store.durable is True


class TestBackupLogStore:
    async def test_recent_logs_newest_first(self, store):
        for i in range(3):
            await store.append_log(
                BackupLogEntry(
                    location=f"run-{i}",
                    kind=BackupKind.MANUAL,
                    occurred_at=T + timedelta(minutes=i),
                    size_bytes=100 * i,
                )
            )

        logs = await store.recent_logs(2)

        assert [log.location for log in logs] == ["run-2", "run-1"]
        assert logs[0].size_bytes == 200
        assert logs[0].id is not None

    async def test_failed_entry_round_trip(self, store):
        stored = await store.append_log(
            BackupLogEntry(
                location="failed",
                kind=BackupKind.AUTOMATIC,
                occurred_at=T,
                size_bytes=None,
                status=BackupStatus.FAILED,
            )
        )

        assert stored.status is BackupStatus.FAILED
        assert stored.size_bytes is None
        assert stored.occurred_at == T
        assert (await store.recent_logs())[0] == stored


class TestInMemoryStore:
    def test_instances_are_isolated(self):
        a = InMemoryStore(records=[JournalRecord(key="2024-01-15", body="x")])
        b = InMemoryStore()
        assert a is not b
        assert a._records and not b._records

    def test_non_durable_flag(self):
        assert InMemoryStore(durable=False).durable is False

    def test_seed_duplicates_rejected(self):
        with pytest.raises(DuplicateKeyError):
            InMemoryStore(
                records=[
                    JournalRecord(key="2024-01-15", body="a"),
                    JournalRecord(key="2024-01-15", body="b"),
                ]
            )


class TestAsyncSqliteStore:
    async def test_reads_degrade_when_uninitialized(self, tmp_path):
        """Missing tables log an error and read as empty."""
        store = AsyncSqliteStore(tmp_path / "empty.db")
        try:
            assert await store.get_all() == []
            assert await store.count() == 0
            assert await store.get_by_key("2024-01-15") is None
        finally:
            await store.close()

    async def test_initialize_is_idempotent(self, tmp_path):
        store = AsyncSqliteStore(tmp_path / "nested" / "journal.db")
        try:
            await store.initialize()
            await store.initialize()
            await store.create("2024-01-15", "x")
            assert await store.count() == 1
        finally:
            await store.close()

    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "journal.db"
        first = AsyncSqliteStore(path)
        await first.initialize()
        await first.create("2024-01-15", "x", T, T)
        await first.close()

        second = AsyncSqliteStore(path)
        try:
            record = await second.get_by_key("2024-01-15")
            assert record.created_at == T
        finally:
            await second.close()

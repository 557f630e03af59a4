"""Tests for store/service construction and the no-store fallback."""

from journal_backup.adapters.memory import InMemoryStore
from journal_backup.adapters.sqlite import AsyncSqliteStore
from journal_backup.backup.service import NO_STORE_LOCATION, BackupService
from journal_backup.config.loader import default_config
from journal_backup.config.models import JournalConfig, Platform, StorageConfig
from journal_backup.factory import build_service, build_settings_store, open_store


def _config(tmp_path, database=None, platform=Platform.DESKTOP) -> JournalConfig:
    return JournalConfig(
        storage=StorageConfig(
            documents_dir=tmp_path / "documents",
            cache_dir=tmp_path / "cache",
            database=database,
            settings_file=tmp_path / "settings.json",
        ),
        platform=platform,
    )


class TestOpenStore:
    async def test_sqlite_store(self, tmp_path):
        store = await open_store(default_config(tmp_path))
        try:
            assert isinstance(store, AsyncSqliteStore)
            assert store.durable
            assert (tmp_path / "journal.db").exists()
        finally:
            await store.close()

    async def test_no_database_is_no_store_mode(self, tmp_path):
        store = await open_store(_config(tmp_path))
        assert isinstance(store, InMemoryStore)
        assert store.durable is False

    async def test_unopenable_database_falls_back(self, tmp_path):
        # a directory cannot be opened as a SQLite file
        (tmp_path / "db-dir").mkdir()
        store = await open_store(_config(tmp_path, database=tmp_path / "db-dir"))
        assert isinstance(store, InMemoryStore)
        assert store.durable is False


class TestBuildService:
    async def test_desktop_service(self, tmp_path):
        config = _config(tmp_path)
        service = build_service(config, InMemoryStore())

        assert isinstance(service, BackupService)
        assert not service.no_store_mode
        assert service._archiver.supported

    async def test_web_service_has_no_archiver(self, tmp_path):
        service = build_service(_config(tmp_path, platform=Platform.WEB), InMemoryStore())
        assert not service._archiver.supported

    async def test_fallback_store_makes_backup_noop(self, tmp_path):
        config = _config(tmp_path)
        service = build_service(config, await open_store(config))
        assert await service.create_backup() == NO_STORE_LOCATION

    def test_settings_store_path(self, tmp_path):
        config = _config(tmp_path)
        assert build_settings_store(config).path == tmp_path / "settings.json"

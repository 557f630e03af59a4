"""Tests for config loading (journal.toml) and the JSON settings store."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from journal_backup.config.loader import default_config, load_config
from journal_backup.config.models import (
    AppSettings,
    BackupFrequency,
    BackupSettings,
    DestinationMode,
    Platform,
)
from journal_backup.config.store import JsonSettingsStore
from journal_backup.errors import SettingsError

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


# ------------------------------------------------------------------
# load_config
# ------------------------------------------------------------------


class TestLoadConfig:
    """load_config() reads [storage] and [runtime] from journal.toml."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Journal config not found"):
            load_config(tmp_path / "journal.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text("[storage\n")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_platform(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text('[runtime]\nplatform = "amiga"\n')
        with pytest.raises(ValueError, match="Invalid journal config"):
            load_config(path)

    def test_relative_paths_resolve_against_config_dir(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text(
            "[storage]\n"
            'documents_dir = "docs"\n'
            'database = "data/journal.db"\n'
            "\n[runtime]\n"
            'platform = "android"\n'
        )

        config = load_config(path)

        base = tmp_path.resolve()
        assert config.storage.documents_dir == base / "docs"
        assert config.storage.cache_dir == base / "cache"
        assert config.storage.database == base / "data" / "journal.db"
        assert config.storage.settings_file == base / "settings.json"
        assert config.platform is Platform.ANDROID

    def test_database_optional(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text("[storage]\n")
        config = load_config(path)
        assert config.storage.database is None
        assert config.platform is Platform.DESKTOP

    def test_absolute_paths_kept(self, tmp_path):
        target = tmp_path / "elsewhere"
        path = tmp_path / "journal.toml"
        path.write_text(f'[storage]\ncache_dir = "{target.as_posix()}"\n')
        assert load_config(path).storage.cache_dir == target


class TestDefaultConfig:
    def test_layout(self, tmp_path):
        config = default_config(tmp_path)
        assert config.storage.documents_dir == tmp_path / "documents"
        assert config.storage.database == tmp_path / "journal.db"
        assert config.platform is Platform.DESKTOP

    def test_platform_override(self, tmp_path):
        assert default_config(tmp_path, Platform.WEB).platform is Platform.WEB


# ------------------------------------------------------------------
# Models
# ------------------------------------------------------------------


class TestSettingsModels:
    def test_backup_defaults(self):
        settings = BackupSettings()
        assert settings.destination_mode is DestinationMode.DOCUMENTS
        assert settings.auto_backup_enabled is True
        assert settings.compress is True

    def test_app_defaults(self):
        settings = AppSettings()
        assert settings.character_limit == 280
        assert settings.auto_backup_frequency is BackupFrequency.OFF
        assert settings.last_backup_time is None

    @pytest.mark.parametrize("limit", [99, 10001])
    def test_character_limit_bounds(self, limit):
        with pytest.raises(ValueError):
            AppSettings(character_limit=limit)

    def test_only_web_lacks_filesystem(self):
        assert [p for p in Platform if not p.has_filesystem] == [Platform.WEB]


# ------------------------------------------------------------------
# JsonSettingsStore
# ------------------------------------------------------------------


class TestJsonSettingsStore:
    """Reads degrade to defaults; writes validate."""

    async def test_defaults_when_missing(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        assert await store.load_app_settings() == AppSettings()
        assert await store.load_backup_settings() == BackupSettings()

    async def test_defaults_when_corrupt(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{corrupt")
        store = JsonSettingsStore(path)
        assert await store.load_backup_settings() == BackupSettings()

    async def test_defaults_when_section_invalid(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"app": {"character_limit": 5}}))
        assert await JsonSettingsStore(path).load_app_settings() == AppSettings()

    async def test_set_and_get(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "nested" / "settings.json")

        await store.set("destination_mode", "share")
        await store.set("auto_backup_frequency", BackupFrequency.WEEKLY)

        assert await store.get("destination_mode") is DestinationMode.SHARE
        assert await store.get("auto_backup_frequency") is BackupFrequency.WEEKLY
        data = json.loads((tmp_path / "nested" / "settings.json").read_text())
        assert data["backup"]["destination_mode"] == "share"
        assert data["app"]["auto_backup_frequency"] == "weekly"

    async def test_set_invalid_value(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        with pytest.raises(SettingsError, match="character_limit"):
            await store.set("character_limit", 50)

    async def test_unknown_key(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        with pytest.raises(KeyError):
            await store.get("theme")
        with pytest.raises(KeyError):
            await store.set("theme", "dark")

    async def test_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = JsonSettingsStore(blocker / "settings.json")
        with pytest.raises(SettingsError, match="Failed to save"):
            await store.set("compress", False)

    async def test_update_last_backup_time(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        await store.update_last_backup_time(NOW)
        assert (await store.load_app_settings()).last_backup_time == NOW

    async def test_sections_do_not_clobber(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        await store.set("compress", False)
        await store.set("character_limit", 500)
        assert (await store.load_backup_settings()).compress is False
        assert (await store.load_app_settings()).character_limit == 500

    async def test_reset(self, tmp_path):
        store = JsonSettingsStore(tmp_path / "settings.json")
        await store.set("compress", False)
        await store.reset()
        assert await store.load_backup_settings() == BackupSettings()

    async def test_write_over_corrupt_file_keeps_a_copy(self, tmp_path, caplog):
        path = tmp_path / "settings.json"
        path.write_text("{corrupt")
        store = JsonSettingsStore(path)

        with caplog.at_level(logging.WARNING):
            await store.set("compress", False)

        assert (tmp_path / "settings.json.bak").read_text() == "{corrupt"
        assert json.loads(path.read_text())["backup"]["compress"] is False
        assert "unreadable" in caplog.text

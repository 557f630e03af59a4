"""Tests for the journal-backup CLI.

Commands run end-to-end against a journal.toml in ``tmp_path``; output is
checked through ``capsys`` (rich writes to the current ``sys.stdout``).
"""

import asyncio
import json
from pathlib import Path

import pytest

from journal_backup.adapters.sqlite import AsyncSqliteStore
from journal_backup.cli import build_parser, main

CONFIG_TOML = """\
[storage]
documents_dir = "documents"
cache_dir = "cache"
database = "journal.db"
settings_file = "settings.json"

[runtime]
platform = "desktop"
"""


def _write_config(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "journal.toml"
    path.write_text(CONFIG_TOML)
    return path


def _seed(database: Path, *keys: str) -> None:
    async def _run():
        store = AsyncSqliteStore(database)
        await store.initialize()
        for key in keys:
            await store.create(key, f"<p>{key}</p>")
        await store.close()

    asyncio.run(_run())


def _count(database: Path) -> int:
    async def _run():
        store = AsyncSqliteStore(database)
        try:
            return await store.count()
        finally:
            await store.close()

    return asyncio.run(_run())


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_backup_flags(self):
        args = build_parser().parse_args(["--verbose", "backup", "--automatic"])
        assert args.verbose
        assert args.automatic
        assert args.command == "backup"

    def test_restore_args(self):
        args = build_parser().parse_args(["restore", "b.zip", "--yes"])
        assert args.path == "b.zip"
        assert args.yes

    def test_frequency_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["frequency", "hourly"])

    def test_location_compress_toggle(self):
        args = build_parser().parse_args(["location", "--no-compress"])
        assert args.compress is False
        assert build_parser().parse_args(["location"]).compress is None

    def test_all_commands_registered(self):
        parser = build_parser()
        for command in (
            ["backup"],
            ["restore", "x"],
            ["history"],
            ["status"],
            ["run-auto"],
            ["frequency", "off"],
            ["location"],
            ["serve"],
        ):
            assert callable(parser.parse_args(command).func)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


class TestBackupCommand:
    def test_backup_creates_archive(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        _seed(tmp_path / "journal.db", "2024-01-15")

        assert main(["--config", str(config), "backup"]) == 0

        archives = list((tmp_path / "documents").glob("journal-backup-*.zip"))
        assert len(archives) == 1
        assert "Backup saved" in capsys.readouterr().out
        settings = json.loads((tmp_path / "settings.json").read_text())
        assert settings["app"]["last_backup_time"] is not None

    def test_missing_config(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "nope.toml"), "status"]) == 1
        assert "not found" in capsys.readouterr().out


class TestRestoreCommand:
    def test_requires_confirmation(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        backup = tmp_path / "b.json"
        backup.write_text(json.dumps({"entries": []}))

        assert main(["--config", str(config), "restore", str(backup)]) == 1
        assert "--yes" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "restore", str(tmp_path / "x.zip"), "--yes"]) == 1

    def test_restore_archive_into_new_journal(self, tmp_path, capsys):
        source = _write_config(tmp_path / "source")
        _seed(tmp_path / "source" / "journal.db", "2024-01-14", "2024-01-15")
        assert main(["--config", str(source), "backup"]) == 0
        archive = next((tmp_path / "source" / "documents").glob("*.zip"))

        target = _write_config(tmp_path / "target")
        capsys.readouterr()
        assert main(["--config", str(target), "restore", str(archive), "--yes"]) == 0

        assert "Restore complete" in capsys.readouterr().out
        assert _count(tmp_path / "target" / "journal.db") == 2

    def test_invalid_backup(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        backup = tmp_path / "b.json"
        backup.write_text('{"version": "1.0.0"}')

        assert main(["--config", str(config), "restore", str(backup), "--yes"]) == 1


class TestInformationalCommands:
    def test_history_empty(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "history"]) == 0
        assert "No backups recorded" in capsys.readouterr().out

    def test_history_after_backup(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        main(["--config", str(config), "backup"])
        capsys.readouterr()

        assert main(["--config", str(config), "history"]) == 0
        assert "Backup History" in capsys.readouterr().out

    def test_status(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "status"]) == 0
        out = capsys.readouterr().out
        assert "Last backup" in out
        assert "Never" in out


class TestSettingsCommands:
    def test_frequency(self, tmp_path):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "frequency", "daily"]) == 0
        settings = json.loads((tmp_path / "settings.json").read_text())
        assert settings["app"]["auto_backup_frequency"] == "daily"

    def test_location_change(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "location", "--mode", "share"]) == 0
        assert "System share dialog" in capsys.readouterr().out

    def test_run_auto_when_off(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "run-auto"]) == 0
        assert "No backup needed" in capsys.readouterr().out

    def test_run_auto_when_due(self, tmp_path):
        config = _write_config(tmp_path)
        main(["--config", str(config), "frequency", "daily"])

        assert main(["--config", str(config), "run-auto"]) == 0
        assert list((tmp_path / "documents").glob("*.zip"))

    def test_serve_refuses_when_off(self, tmp_path, capsys):
        config = _write_config(tmp_path)
        assert main(["--config", str(config), "serve"]) == 1
        assert "Auto-backup is off" in capsys.readouterr().out

"""JSON-file settings store.

``JsonSettingsStore`` keeps ``AppSettings`` and ``BackupSettings`` in a single
JSON document::

    {"app": {...}, "backup": {...}}

Reads never fail: an unreadable or invalid file falls back to defaults.
Writes validate through the pydantic models and raise ``SettingsError``.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from journal_backup.config.models import AppSettings, BackupSettings
from journal_backup.errors import SettingsError

logger = logging.getLogger(__name__)

_SECTIONS: dict[str, type[BaseModel]] = {
    "app": AppSettings,
    "backup": BackupSettings,
}


def _section_for(key: str) -> str:
    for section, model in _SECTIONS.items():
        if key in model.model_fields:
            return section
    raise KeyError(f"Unknown setting: {key}")


class JsonSettingsStore:
    """``SettingsStore`` persisted as one JSON file.

    Args:
        path: Settings file location.  Created on first write.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings file must contain a JSON object")
        return data

    def _load_section(self, section: str) -> BaseModel:
        model = _SECTIONS[section]
        try:
            return model.model_validate(self._read_raw().get(section) or {})
        except (OSError, ValueError) as e:
            logger.error(f"Error loading {section} settings, using defaults: {e}")
            return model()

    def _write_section(self, section: str, settings: BaseModel) -> None:
        try:
            data = self._read_raw()
        except (OSError, ValueError) as e:
            self._set_aside_unreadable(e)
            data = {}
        data[section] = settings.model_dump(mode="json")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise SettingsError(f"Failed to save settings: {e}") from e

    def _set_aside_unreadable(self, error: Exception) -> None:
        """Keep an unreadable settings file as ``<name>.bak`` before rewriting."""
        backup = self.path.with_name(self.path.name + ".bak")
        try:
            self.path.replace(backup)
        except OSError as e:
            logger.warning(
                f"Settings file {self.path} is unreadable ({error}); could not keep a copy: {e}"
            )
            return
        logger.warning(
            f"Settings file {self.path} is unreadable ({error}); moved to {backup.name}, "
            f"other settings fall back to defaults"
        )

    # ------------------------------------------------------------------
    # SettingsStore
    # ------------------------------------------------------------------

    async def load_app_settings(self) -> AppSettings:
        return self._load_section("app")

    async def load_backup_settings(self) -> BackupSettings:
        return self._load_section("backup")

    async def get(self, key: str) -> Any:
        """Return one setting by field name (from either section).

        Raises:
            KeyError: If ``key`` is not a known setting.
        """
        section = _section_for(key)
        return getattr(self._load_section(section), key)

    async def set(self, key: str, value: Any) -> None:
        """Validate and persist one setting.

        Raises:
            KeyError: If ``key`` is not a known setting.
            SettingsError: If the value is invalid or the write fails.
        """
        section = _section_for(key)
        current = self._load_section(section)
        try:
            updated = _SECTIONS[section].model_validate(
                {**current.model_dump(), key: value}
            )
        except ValidationError as e:
            raise SettingsError(f"Invalid value for {key}: {value!r}") from e
        self._write_section(section, updated)

    # ------------------------------------------------------------------
    # Convenience writes
    # ------------------------------------------------------------------

    async def save_app_settings(self, settings: AppSettings) -> None:
        self._write_section("app", settings)

    async def save_backup_settings(self, settings: BackupSettings) -> None:
        self._write_section("backup", settings)

    async def reset(self) -> None:
        """Restore every setting to its default."""
        await self.save_app_settings(AppSettings())
        await self.save_backup_settings(BackupSettings())

    async def update_last_backup_time(self, now: datetime | None = None) -> None:
        await self.set("last_backup_time", now or datetime.now(timezone.utc))

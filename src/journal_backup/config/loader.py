"""Load runtime configuration from a TOML file.

Usage:
    from journal_backup.config.loader import load_config

    config = load_config(Path("journal.toml"))

Example journal.toml::

    [storage]
    documents_dir = "~/Journal/Documents"
    cache_dir = "~/Journal/Cache"
    database = "~/Journal/journal.db"   # omit for no-store mode
    settings_file = "~/Journal/settings.json"

    [runtime]
    platform = "desktop"
"""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from journal_backup.config.models import JournalConfig, Platform, StorageConfig

DEFAULT_CONFIG_NAME = "journal.toml"


def _expand(value: str | None, base_dir: Path) -> Path | None:
    """Expand ``~`` and resolve relative paths against ``base_dir``."""
    if value is None:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def default_config(base_dir: Path, platform: Platform = Platform.DESKTOP) -> JournalConfig:
    """Build a configuration rooted at ``base_dir`` without a TOML file.

    The database lives at ``base_dir/journal.db`` and backups are staged
    under ``base_dir/documents``.
    """
    return JournalConfig(
        storage=StorageConfig(
            documents_dir=base_dir / "documents",
            cache_dir=base_dir / "cache",
            database=base_dir / "journal.db",
            settings_file=base_dir / "settings.json",
        ),
        platform=platform,
    )


def load_config(config_path: Path | None = None) -> JournalConfig:
    """Load runtime configuration from a TOML file.

    Args:
        config_path: Path to journal.toml (default: ``./journal.toml``).

    Returns:
        Parsed ``JournalConfig``. Relative paths resolve against the
        directory containing the config file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the config format is invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Journal config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_NAME} with a [storage] table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    base_dir = config_path.resolve().parent
    storage_data = data.get("storage", {})
    runtime_data = data.get("runtime", {})

    try:
        storage = StorageConfig(
            documents_dir=_expand(storage_data.get("documents_dir", "documents"), base_dir),
            cache_dir=_expand(storage_data.get("cache_dir", "cache"), base_dir),
            database=_expand(storage_data.get("database"), base_dir),
            settings_file=_expand(
                storage_data.get("settings_file", "settings.json"), base_dir
            ),
        )
        return JournalConfig(
            storage=storage,
            platform=runtime_data.get("platform", Platform.DESKTOP.value),
        )
    except ValidationError as e:
        raise ValueError(f"Invalid journal config {config_path}: {e}") from e

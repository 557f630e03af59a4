"""Pydantic models for user preferences and runtime configuration."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


# ============================================================================
# Enumerations
# ============================================================================


class DestinationMode(str, Enum):
    """Where produced backups should go."""

    DOCUMENTS = "documents"
    SHARE = "share"
    CUSTOM = "custom"


class BackupFrequency(str, Enum):
    """How often the unattended backup should run."""

    OFF = "off"
    DAILY = "daily"
    WEEKLY = "weekly"


class Platform(str, Enum):
    """Host platform the backup runs on."""

    IOS = "ios"
    ANDROID = "android"
    DESKTOP = "desktop"
    WEB = "web"

    @property
    def has_filesystem(self) -> bool:
        """Browsers cannot write files; everything else can."""
        return self is not Platform.WEB


# ============================================================================
# Persisted preference models
# ============================================================================


class BackupSettings(BaseModel):
    """Backup preferences stored in the settings file."""

    destination_mode: DestinationMode = DestinationMode.DOCUMENTS
    custom_path: str | None = None
    auto_backup_enabled: bool = True
    compress: bool = True


class AppSettings(BaseModel):
    """Application preferences stored in the settings file."""

    character_limit: int = Field(default=280, ge=100, le=10000)
    backup_destination: str | None = None
    auto_backup_frequency: BackupFrequency = BackupFrequency.OFF
    last_backup_time: datetime | None = None  # advanced only after a successful export


# ============================================================================
# Runtime configuration (journal.toml)
# ============================================================================


class StorageConfig(BaseModel):
    """Filesystem locations from the ``[storage]`` table."""

    documents_dir: Path
    cache_dir: Path
    database: Path | None = None  # None = no-store mode
    settings_file: Path


class JournalConfig(BaseModel):
    """Complete runtime configuration from journal.toml."""

    storage: StorageConfig
    platform: Platform = Platform.DESKTOP

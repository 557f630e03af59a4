"""Error taxonomy for backup, restore, and scheduling.

Recoverable conditions (compression failure, missing share target, log-write
failure) are handled inside the package and never reach callers.  Everything
here that *does* reach a caller derives from ``JournalBackupError``.

Per-record insertion conflicts during restore are not faults: stores signal
them with ``DuplicateKeyError`` and the restore loop counts them as skipped.
"""


class JournalBackupError(Exception):
    """Base class for all journal-backup errors."""

    pass


class FormatError(JournalBackupError):
    """Raised when a backup envelope is structurally invalid."""

    pass


class CompressionError(JournalBackupError):
    """Raised when packing or unpacking an archive fails."""

    pass


class UnsupportedPlatformError(JournalBackupError):
    """Raised when archiving is requested on a platform without support."""

    pass


class BackupFailedError(JournalBackupError):
    """Raised when the backup pipeline fails (after the failure is logged)."""

    pass


class RestoreFailedError(JournalBackupError):
    """Raised when a restore payload cannot be read or validated."""

    pass


class NotFoundError(JournalBackupError):
    """Raised when a record id does not exist in the store."""

    pass


class DuplicateKeyError(JournalBackupError):
    """Raised by stores when a record already exists for a date key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Entry already exists for {key}")
        self.key = key


class SettingsError(JournalBackupError):
    """Raised when a settings write fails or a value is invalid."""

    pass


class SchedulerPermissionError(JournalBackupError):
    """Raised when the host refuses background task registration."""

    pass

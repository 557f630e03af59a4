"""Decide whether an unattended backup is due.

Pure functions of their inputs and the current time.

Usage:
    from journal_backup.tasks.cadence import should_backup

    if should_backup(BackupFrequency.DAILY, last_backup_time):
        ...
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from journal_backup.config.models import AppSettings, BackupFrequency, BackupSettings
from journal_backup.formatting import as_utc

# Slightly under a day so scheduler jitter doesn't skip a daily run
DAILY_THRESHOLD = timedelta(hours=23)
WEEKLY_THRESHOLD = timedelta(hours=168)

# Host scheduler hints: check more often than the backup cadence
DAILY_CHECK_INTERVAL = timedelta(hours=12)
WEEKLY_CHECK_INTERVAL = timedelta(hours=24)


class CadenceDecision(str, Enum):
    """Result of the cadence check."""

    RUN = "run"
    DISABLED = "disabled"
    NOT_DUE = "not_due"


def should_backup(
    frequency: BackupFrequency,
    last_backup_time: datetime | None,
    now: datetime | None = None,
) -> bool:
    """Whether enough time has passed since the last successful backup.

    ``off`` never runs; a missing ``last_backup_time`` always runs.
    """
    if frequency is BackupFrequency.OFF:
        return False
    if last_backup_time is None:
        return True

    elapsed = as_utc(now or datetime.now(timezone.utc)) - as_utc(last_backup_time)

    if frequency is BackupFrequency.DAILY:
        return elapsed >= DAILY_THRESHOLD
    if frequency is BackupFrequency.WEEKLY:
        return elapsed >= WEEKLY_THRESHOLD
    return False


def decide(
    app_settings: AppSettings,
    backup_settings: BackupSettings,
    now: datetime | None = None,
) -> CadenceDecision:
    """Combine preferences into a run/skip decision for the background task."""
    frequency = app_settings.auto_backup_frequency
    if frequency is BackupFrequency.OFF or not backup_settings.auto_backup_enabled:
        return CadenceDecision.DISABLED
    if should_backup(frequency, app_settings.last_backup_time, now):
        return CadenceDecision.RUN
    return CadenceDecision.NOT_DUE


def interval_for_frequency(frequency: BackupFrequency) -> timedelta:
    """Minimum interval to request from the host scheduler."""
    if frequency is BackupFrequency.DAILY:
        return DAILY_CHECK_INTERVAL
    return WEEKLY_CHECK_INTERVAL

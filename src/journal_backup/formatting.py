"""Human-readable formatting helpers for sizes and backup times."""

import math
from datetime import datetime, timezone

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size_bytes: int | None) -> str:
    """Format a byte count as e.g. ``"1.50 KB"``.

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
    """
    if not size_bytes:
        return "0 Bytes"

    k = 1024
    i = min(int(math.floor(math.log(size_bytes) / math.log(k))), len(_SIZE_UNITS) - 1)
    return f"{size_bytes / math.pow(k, i):.2f} {_SIZE_UNITS[i]}"


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Percentage saved by compression (0 when the original is empty)."""
    if original_size == 0:
        return 0.0
    return (original_size - compressed_size) / original_size * 100


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_last_backup_time(
    last_backup_time: datetime | None,
    now: datetime | None = None,
) -> str:
    """Describe how long ago the last backup happened.

    Returns ``"Never"`` when no backup was recorded, relative phrases for
    the last week, and a short date (``"Jan 15"``, with the year when it
    differs from ``now``) beyond that.
    """
    if last_backup_time is None:
        return "Never"

    now = as_utc(now or datetime.now(timezone.utc))
    last = as_utc(last_backup_time)
    diff_seconds = (now - last).total_seconds()

    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days < 7:
        return f"{days} day{'s' if days > 1 else ''} ago"

    label = f"{last.strftime('%b')} {last.day}"
    if last.year != now.year:
        label += f", {last.year}"
    return label

"""Backup envelope codec.

Converts journal records to and from the versioned JSON envelope.  Older
backups used different entry field names; ``normalize_record`` maps either
convention onto ``JournalRecord`` so no migration step is needed.

Usage:
    from journal_backup.backup.codec import encode, serialize, decode, normalize_record

    raw = serialize(encode(records))
    envelope = decode(raw)
    restored = [normalize_record(e) for e in envelope.entries]
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from journal_backup.backup.models import BackupEnvelope, EntrySchema, JournalRecord
from journal_backup.config.models import BackupSettings
from journal_backup.errors import FormatError
from journal_backup.formatting import as_utc

logger = logging.getLogger(__name__)

CURRENT_VERSION = "1.0.0"

# record field -> (current names..., legacy name)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "key": ("entry_date", "key", "date"),
    "body": ("html_body", "body", "content"),
    "created_at": ("created_at", "createdAt"),
    "updated_at": ("updated_at", "updatedAt"),
}

CURRENT_FIELDS = frozenset({"entry_date", "key", "html_body", "body", "created_at", "updated_at"})
LEGACY_FIELDS = frozenset({"date", "content", "createdAt", "updatedAt"})


def backup_basename(now: datetime | None = None) -> str:
    """Timestamped file stem, e.g. ``journal-backup-2024-01-15T10-30-00-000Z``."""
    now = as_utc(now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return "journal-backup-" + iso.replace(":", "-").replace(".", "-")


def _to_wire(record: JournalRecord) -> dict[str, Any]:
    """Serialize a record with current field names."""
    return {
        "id": record.id,
        "entry_date": record.key,
        "html_body": record.body,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


def encode(
    records: list[JournalRecord],
    settings: BackupSettings | None = None,
    now: datetime | None = None,
) -> BackupEnvelope:
    """Wrap records in a new envelope stamped with ``CURRENT_VERSION``.

    Args:
        records: Records in the order they should appear in the file.
        settings: Optional preferences recorded as non-authoritative
            ``backupSettings`` metadata.
        now: Envelope timestamp (default: current UTC time).
    """
    now = as_utc(now or datetime.now(timezone.utc))
    backup_settings = None
    if settings is not None:
        backup_settings = {
            "createdWith": settings.destination_mode.value,
            "compress": settings.compress,
            "createdAt": now.isoformat(),
        }

    return BackupEnvelope(
        version=CURRENT_VERSION,
        timestamp=now.isoformat(),
        total_entries=len(records),
        entries=[_to_wire(r) for r in records],
        backup_settings=backup_settings,
    )


def serialize(envelope: BackupEnvelope) -> bytes:
    """Render an envelope as indented UTF-8 JSON using wire names."""
    data = envelope.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def _lenient_version(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.warning(f"Ignoring unreadable backup version: {value!r}")
    return None


def _lenient_timestamp(value: Any) -> str | None:
    """ISO text as-is; numbers are read as epoch milliseconds."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            pass
    logger.warning(f"Ignoring unreadable backup timestamp: {value!r}")
    return None


def _lenient_total(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    logger.warning(f"Ignoring unreadable totalEntries: {value!r}")
    return None


def _lenient_settings(value: Any) -> dict[str, Any] | None:
    if value is None or isinstance(value, dict):
        return value
    logger.warning(f"Ignoring backupSettings of type {type(value).__name__}")
    return None


def decode(raw: bytes | str) -> BackupEnvelope:
    """Parse a serialized envelope.

    Only ``entries`` is structural.  The remaining metadata is informational:
    unreadable values are dropped with a warning, and version mismatches
    only warn, so backups stay restorable across app versions.

    Raises:
        FormatError: If the payload is not JSON, not an object, or has no
            ``entries`` list.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FormatError(f"Backup is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise FormatError("Backup must be a JSON object")

    entries = data.get("entries")
    if entries is None:
        raise FormatError("Missing required key: entries")
    if not isinstance(entries, list):
        raise FormatError("'entries' must be a list")

    envelope = BackupEnvelope(
        version=_lenient_version(data.get("version")),
        timestamp=_lenient_timestamp(data.get("timestamp")),
        total_entries=_lenient_total(data.get("totalEntries")),
        entries=entries,
        backup_settings=_lenient_settings(data.get("backupSettings")),
    )

    if envelope.version is not None and envelope.version != CURRENT_VERSION:
        logger.warning(
            f"Backup version mismatch ({envelope.version} != {CURRENT_VERSION}), "
            f"proceeding with caution"
        )
    if envelope.total_entries is not None and envelope.total_entries != len(entries):
        logger.warning(
            f"totalEntries={envelope.total_entries} but backup holds "
            f"{len(entries)} entries"
        )

    return envelope


def detect_schema(entry: dict[str, Any]) -> EntrySchema:
    """Classify an entry by its field-name convention."""
    if CURRENT_FIELDS.intersection(entry):
        return EntrySchema.CURRENT
    if LEGACY_FIELDS.intersection(entry):
        return EntrySchema.LEGACY
    return EntrySchema.CURRENT


def _first_present(entry: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = entry.get(name)
        if value not in (None, ""):
            return value
    return None


def normalize_record(entry: Any) -> JournalRecord:
    """Map a serialized entry (current or legacy names) onto ``JournalRecord``.

    Each field takes the current-name value when present, otherwise the
    legacy alias.

    Raises:
        FormatError: If the entry is not an object or lacks a key/body.
    """
    if not isinstance(entry, dict):
        raise FormatError(f"Entry must be an object, got {type(entry).__name__}")

    schema = detect_schema(entry)
    if schema is EntrySchema.LEGACY:
        logger.debug(f"Normalizing legacy entry for {entry.get('date')}")

    values = {field: _first_present(entry, names) for field, names in FIELD_ALIASES.items()}
    if values["key"] is None or values["body"] is None:
        raise FormatError("Entry is missing its date or content")

    record_id = entry.get("id")
    if not isinstance(record_id, int) or isinstance(record_id, bool):
        record_id = None

    try:
        return JournalRecord(id=record_id, **values)
    except ValidationError as e:
        raise FormatError(f"Invalid entry {values['key']!r}: {e}") from e

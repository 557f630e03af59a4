"""Backup engine: one full backup or restore per call, one log entry per call.

``BackupService`` orchestrates snapshot -> encode -> compress -> route -> log
for backups, and unpack -> decode -> merge -> log for restores.  All
collaborators are injected, so tests can supply isolated stores.

Usage:
    service = BackupService(
        store=store,
        settings=JsonSettingsStore(path),
        blobs=LocalBlobStore(),
        archiver=ArchiverAdapter(LocalBlobStore(), ZipArchiver(), cache_dir),
        router=SinkRouter(Platform.DESKTOP),
        documents_dir=documents_dir,
    )

    location = await service.create_backup(BackupKind.MANUAL)
    outcome = await service.restore_from_backup(raw_json)
    history = await service.get_backup_history()
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from journal_backup.adapters.base import BackupLogStore, BlobStore, RecordStore, SettingsStore
from journal_backup.backup import codec
from journal_backup.backup.archiver import ARCHIVE_SUFFIX, ArchiverAdapter
from journal_backup.backup.models import (
    BackupEnvelope,
    BackupKind,
    BackupLogEntry,
    BackupStatus,
    RestoreOutcome,
)
from journal_backup.backup.router import SinkRouter
from journal_backup.config.models import BackupSettings, DestinationMode
from journal_backup.errors import (
    BackupFailedError,
    DuplicateKeyError,
    RestoreFailedError,
)
from journal_backup.formatting import format_file_size

logger = logging.getLogger(__name__)

NO_STORE_LOCATION = "no-store-backup-location"
FAILED_LOCATION = "failed"
RESTORE_FAILED_LOCATION = "restore failed"
HISTORY_LIMIT = 20


class BackupService:
    """Create, restore, and list journal backups.

    Args:
        store: Journal records.  A non-durable store means no-store mode:
            backup and restore become no-ops.
        settings: Preference store (reads ``BackupSettings``).
        blobs: Filesystem used for staging artifacts.
        archiver: Pack/unpack adapter.
        router: Output channel selection.
        documents_dir: Directory backups are staged in.
        log_store: Audit log table (defaults to ``store``).
        clock: Returns the current time (default: UTC now).
    """

    def __init__(
        self,
        store: RecordStore,
        settings: SettingsStore,
        blobs: BlobStore,
        archiver: ArchiverAdapter,
        router: SinkRouter,
        documents_dir: Path,
        log_store: BackupLogStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._blobs = blobs
        self._archiver = archiver
        self._router = router
        self._documents_dir = Path(documents_dir)
        self._log_store: BackupLogStore = log_store if log_store is not None else store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def no_store_mode(self) -> bool:
        return not self._store.durable

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_backup_settings(self) -> BackupSettings:
        return await self._settings.load_backup_settings()

    async def update_backup_settings(self, **changes) -> BackupSettings:
        """Persist one or more ``BackupSettings`` fields and return the result."""
        for key, value in changes.items():
            await self._settings.set(key, value)
        return await self._settings.load_backup_settings()

    async def get_backup_location_description(self) -> str:
        """Describe where backups end up, for display."""
        settings = await self._settings.load_backup_settings()
        mode = settings.destination_mode

        if mode is DestinationMode.DOCUMENTS:
            if not self._router.platform.has_filesystem:
                return "Downloads folder"
            return "App Documents folder"
        if mode is DestinationMode.SHARE:
            return "System share dialog (choose location each time)"
        if mode is DestinationMode.CUSTOM:
            return settings.custom_path or "Custom location"
        return "Default location"

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def create_backup(self, kind: BackupKind = BackupKind.AUTOMATIC) -> str:
        """Write a backup of every record and return its resolved location.

        Compression failures fall back to the uncompressed ``.json``
        artifact.  Any other failure is logged as a ``failed`` entry and
        re-raised.

        Returns:
            File path of the artifact, ``"Downloads"`` on web, or
            ``NO_STORE_LOCATION`` in no-store mode.

        Raises:
            BackupFailedError: If the backup could not be produced.
        """
        if self.no_store_mode:
            logger.info("Backup not available in no-store mode")
            return NO_STORE_LOCATION

        staged: list[Path] = []
        try:
            settings = await self._settings.load_backup_settings()
            records = await self._store.get_all()

            now = self._clock()
            envelope = codec.encode(records, settings, now)
            data = codec.serialize(envelope)
            original_size = len(data)

            json_path = self._documents_dir / f"{codec.backup_basename(now)}.json"

            if not self._router.platform.has_filesystem:
                # Browser: no staging and no compression
                location = await self._router.deliver(json_path, data, settings, kind)
                final_size = original_size
            else:
                await self._blobs.write(json_path, data)
                staged.append(json_path)
                artifact, final_size = json_path, original_size
                if settings.compress:
                    artifact, final_size = await self._compress(json_path, original_size)
                    staged.append(artifact)
                location = await self._router.deliver(artifact, data, settings, kind)

            await self._append_log(
                BackupLogEntry(
                    location=location,
                    kind=kind,
                    occurred_at=now,
                    size_bytes=final_size,
                    status=BackupStatus.SUCCESS,
                )
            )
            logger.info(
                f"Backup created ({len(records)} entries, {format_file_size(final_size)}): {location}"
            )
            return location

        except Exception as e:
            logger.error(f"Error creating backup: {e}")
            await self._discard(staged)
            await self._append_log(
                BackupLogEntry(
                    location=FAILED_LOCATION,
                    kind=kind,
                    occurred_at=self._clock(),
                    size_bytes=None,
                    status=BackupStatus.FAILED,
                )
            )
            raise BackupFailedError("Failed to create backup") from e

    async def _compress(self, json_path: Path, original_size: int) -> tuple[Path, int]:
        """Pack ``json_path`` into a sibling ``.zip``.

        Returns the artifact to keep and its size.  Any failure leaves the
        ``.json`` artifact in place.
        """
        zip_path = json_path.with_suffix(ARCHIVE_SUFFIX)
        try:
            packed = await self._archiver.pack(json_path, zip_path)
            if packed == json_path:
                return json_path, original_size
            final_size = await self._blobs.size(packed)
            await self._blobs.delete(json_path)
        except Exception as e:
            logger.error(f"Compression failed, using uncompressed backup: {e}")
            try:
                await self._blobs.delete(zip_path)
            except Exception as cleanup_error:
                logger.warning(f"Could not remove partial archive {zip_path}: {cleanup_error}")
            return json_path, original_size

        logger.debug(f"Backup compressed successfully: {format_file_size(final_size)}")
        return packed, final_size

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def restore_from_backup(
        self,
        payload: bytes | str,
        is_compressed: bool = False,
        archive_path: str | Path | None = None,
        kind: BackupKind = BackupKind.MANUAL,
    ) -> RestoreOutcome:
        """Insert every backed-up record that does not already exist.

        Existing records are never overwritten: duplicates and per-entry
        errors are counted as skipped and the loop continues.

        Args:
            payload: Serialized envelope (ignored when ``is_compressed``).
            is_compressed: Read the envelope from ``archive_path`` instead.
            archive_path: ``.zip`` backup to extract.
            kind: Recorded on the log entry.

        Returns:
            Restored/skipped counts plus per-entry error messages.

        Raises:
            RestoreFailedError: If the payload cannot be read or is not a
                valid envelope.  A ``failed`` log entry is written first.
        """
        if self.no_store_mode:
            logger.info("Restore not available in no-store mode")
            return RestoreOutcome()

        payload_bytes = payload.encode("utf-8") if isinstance(payload, str) else payload

        try:
            if is_compressed:
                if archive_path is None:
                    raise RestoreFailedError("Compressed restore requires an archive path")
                envelope = await self._read_archive(Path(archive_path))
                payload_size = len(payload_bytes) or await self._blobs.size(Path(archive_path))
            else:
                envelope = codec.decode(payload_bytes)
                payload_size = len(payload_bytes)
        except Exception as e:
            logger.error(f"Error restoring backup: {e}")
            await self._append_log(
                BackupLogEntry(
                    location=RESTORE_FAILED_LOCATION,
                    kind=kind,
                    occurred_at=self._clock(),
                    size_bytes=None,
                    status=BackupStatus.FAILED,
                )
            )
            if isinstance(e, RestoreFailedError):
                raise
            raise RestoreFailedError(f"Failed to restore from backup: {e}") from e

        outcome = await self._merge(envelope)

        await self._append_log(
            BackupLogEntry(
                location=outcome.summary,
                kind=kind,
                occurred_at=self._clock(),
                size_bytes=payload_size,
                status=BackupStatus.SUCCESS,
            )
        )
        logger.info(
            f"Restore complete: {outcome.restored} entries restored, "
            f"{outcome.skipped} entries skipped"
        )
        return outcome

    async def _read_archive(self, archive_path: Path) -> BackupEnvelope:
        """Extract an archive and decode the first ``.json`` member."""
        extracted = await self._archiver.unpack(archive_path)
        try:
            names = await self._blobs.list(extracted)
            json_name = next((n for n in names if n.lower().endswith(".json")), None)
            if json_name is None:
                raise RestoreFailedError("No JSON file found in compressed backup")
            return codec.decode(await self._blobs.read(extracted / json_name))
        finally:
            try:
                await self._blobs.delete(extracted)
            except Exception as e:
                logger.warning(f"Could not remove extracted files {extracted}: {e}")

    async def _merge(self, envelope: BackupEnvelope) -> RestoreOutcome:
        outcome = RestoreOutcome()
        for index, entry in enumerate(envelope.entries):
            try:
                record = codec.normalize_record(entry)
                await self._store.create(
                    record.key, record.body, record.created_at, record.updated_at
                )
            except DuplicateKeyError as e:
                logger.debug(f"Skipping existing entry for date: {e.key}")
                outcome.skipped += 1
            except Exception as e:
                logger.warning(f"Skipping backup entry {index}: {e}")
                outcome.skipped += 1
                outcome.errors.append(f"entry {index}: {e}")
            else:
                outcome.restored += 1
        return outcome

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_backup_history(self, limit: int = HISTORY_LIMIT) -> list[BackupLogEntry]:
        """Return recent log entries, newest first.  Never raises."""
        if self.no_store_mode:
            return []
        try:
            return await self._log_store.recent_logs(min(limit, HISTORY_LIMIT))
        except Exception as e:
            logger.error(f"Error getting backup history: {e}")
            return []

    async def _append_log(self, entry: BackupLogEntry) -> None:
        """Best-effort audit append; failures are logged, never raised."""
        try:
            await self._log_store.append_log(entry)
        except Exception as e:
            logger.error(f"Error logging backup attempt: {e}")

    async def _discard(self, paths: list[Path]) -> None:
        """Delete staged artifacts after a failed backup (best-effort)."""
        for path in paths:
            try:
                await self._blobs.delete(path)
            except Exception as e:
                logger.warning(f"Could not remove staged file {path}: {e}")

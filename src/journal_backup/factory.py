"""Build stores and the backup service from runtime configuration.

A missing or broken database does not stop the application: ``open_store``
falls back to a non-durable ``InMemoryStore``, which puts the backup service
into no-store mode (backups report ``no-store-backup-location``, restores
return an empty outcome, history is empty).

Usage:
    from journal_backup.config.loader import load_config
    from journal_backup.factory import build_service, open_store

    config = load_config()
    store = await open_store(config)
    service = build_service(config, store)
"""

import logging

from journal_backup.adapters.base import DownloadSink, RecordStore, ShareSink
from journal_backup.adapters.files import LocalBlobStore, ZipArchiver
from journal_backup.adapters.memory import InMemoryStore
from journal_backup.adapters.sqlite import AsyncSqliteStore
from journal_backup.backup.archiver import ArchiverAdapter
from journal_backup.backup.router import SinkRouter
from journal_backup.backup.service import BackupService
from journal_backup.config.models import JournalConfig
from journal_backup.config.store import JsonSettingsStore

logger = logging.getLogger(__name__)


async def open_store(config: JournalConfig) -> AsyncSqliteStore | InMemoryStore:
    """Open the configured database, or a non-durable stand-in.

    Args:
        config: Runtime configuration.  ``storage.database`` of ``None``
            selects no-store mode directly.

    Returns:
        An initialized ``AsyncSqliteStore``, or ``InMemoryStore(durable=False)``
        if no database is configured or it cannot be opened.
    """
    database = config.storage.database
    if database is None:
        logger.warning("No database configured, running in no-store mode")
        return InMemoryStore(durable=False)

    store = AsyncSqliteStore(database)
    try:
        await store.initialize()
    except Exception as e:
        logger.warning(f"Could not open database {database}, running in no-store mode: {e}")
        await store.close()
        return InMemoryStore(durable=False)

    logger.debug(f"Opened journal database at {database}")
    return store


def build_settings_store(config: JournalConfig) -> JsonSettingsStore:
    return JsonSettingsStore(config.storage.settings_file)


def build_service(
    config: JournalConfig,
    store: RecordStore,
    settings: JsonSettingsStore | None = None,
    share_sink: ShareSink | None = None,
    download_sink: DownloadSink | None = None,
) -> BackupService:
    """Wire a ``BackupService`` for the configured platform.

    Platforms without a filesystem get no archiver, so backups stay
    uncompressed and compressed restores raise ``UnsupportedPlatformError``.

    Args:
        config: Runtime configuration.
        store: Journal store (from ``open_store``).
        settings: Preference store (default: from ``config``).
        share_sink: System share sheet, if any.
        download_sink: Browser download channel, if any.
    """
    blobs = LocalBlobStore()
    archiver = ZipArchiver() if config.platform.has_filesystem else None

    return BackupService(
        store=store,
        settings=settings or build_settings_store(config),
        blobs=blobs,
        archiver=ArchiverAdapter(blobs, archiver, config.storage.cache_dir),
        router=SinkRouter(config.platform, share_sink=share_sink, download_sink=download_sink),
        documents_dir=config.storage.documents_dir,
    )

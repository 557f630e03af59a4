"""Pick the output channel for a finished backup artifact.

Rules, evaluated in order:

1. No filesystem (browser) -> client-side download; ``destination_mode`` is
   ignored.
2. ``share`` -> share sink.
3. Manual run and mode other than ``documents`` -> share sink.
4. ``documents`` (or no custom target) -> leave the artifact where it was
   staged.
5. ``custom`` with a ``custom_path`` -> share sink.  Custom destinations are
   not wired to a real filesystem target yet.

A missing or unavailable share sink is skipped silently: the artifact stays
at its staging path and the backup still succeeds.
"""

import logging
from enum import Enum
from pathlib import Path

from journal_backup.adapters.base import DownloadSink, ShareSink
from journal_backup.backup.archiver import is_compressed
from journal_backup.backup.models import BackupKind
from journal_backup.config.models import BackupSettings, DestinationMode, Platform

logger = logging.getLogger(__name__)

DOWNLOADS_LOCATION = "Downloads"
SHARE_TITLE = "Save Journal Backup"
CUSTOM_SHARE_TITLE = "Save Journal Backup to Custom Location"


class Route(str, Enum):
    """Output channel chosen for an artifact."""

    DOWNLOAD = "download"
    SHARE = "share"
    LOCAL = "local"


def mime_type_for(path: str | Path) -> str:
    return "application/zip" if is_compressed(path) else "application/json"


class SinkRouter:
    """Route backup artifacts to the local store, share sheet, or download.

    Args:
        platform: Host platform.
        share_sink: System share sheet, if the platform has one.
        download_sink: Browser download, used when there is no filesystem.
    """

    def __init__(
        self,
        platform: Platform,
        share_sink: ShareSink | None = None,
        download_sink: DownloadSink | None = None,
    ) -> None:
        self.platform = platform
        self._share_sink = share_sink
        self._download_sink = download_sink

    def decide(self, settings: BackupSettings, kind: BackupKind) -> Route:
        """Pure routing decision (no I/O)."""
        mode = settings.destination_mode

        if not self.platform.has_filesystem:
            return Route.DOWNLOAD
        if mode is DestinationMode.SHARE:
            return Route.SHARE
        if kind is BackupKind.MANUAL and mode is not DestinationMode.DOCUMENTS:
            return Route.SHARE
        if mode is DestinationMode.CUSTOM and settings.custom_path:
            return Route.SHARE
        return Route.LOCAL

    async def deliver(
        self,
        artifact: Path,
        data: bytes,
        settings: BackupSettings,
        kind: BackupKind,
    ) -> str:
        """Hand the artifact to its channel and return the resolved location.

        Args:
            artifact: Staged file path (or the would-be filename on web).
            data: Artifact bytes, used only by the download channel.
            settings: Current backup preferences.
            kind: Manual or automatic run.

        Returns:
            ``"Downloads"`` for browser downloads, otherwise the artifact path.
        """
        route = self.decide(settings, kind)
        mime_type = mime_type_for(artifact)

        if route is Route.DOWNLOAD:
            if self._download_sink is None:
                raise RuntimeError("No download sink configured for a platform without a filesystem")
            await self._download_sink.download(Path(artifact).name, data, mime_type)
            return DOWNLOADS_LOCATION

        if route is Route.SHARE:
            title = (
                CUSTOM_SHARE_TITLE
                if settings.destination_mode is DestinationMode.CUSTOM
                else SHARE_TITLE
            )
            await self._offer(artifact, mime_type, title)

        return str(artifact)

    async def _offer(self, artifact: Path, mime_type: str, title: str) -> None:
        if self._share_sink is None:
            logger.info("Share sink not available, keeping backup at staging path")
            return
        try:
            available = await self._share_sink.is_available()
        except Exception as e:
            logger.warning(f"Could not check share availability: {e}")
            return
        if not available:
            logger.info("Sharing not available, keeping backup at staging path")
            return
        await self._share_sink.offer(Path(artifact), mime_type, title)

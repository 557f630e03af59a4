"""Uniform pack/unpack over platforms that may lack archiving.

``ArchiverAdapter`` stages files through a ``BlobStore`` and delegates the
actual compression to an ``Archiver``.  Without an archiver (or on a
platform without a filesystem) ``pack`` is a passthrough that returns the
source path unchanged, and ``unpack`` raises ``UnsupportedPlatformError``.

Usage:
    adapter = ArchiverAdapter(LocalBlobStore(), ZipArchiver(), cache_dir)
    zip_path = await adapter.pack(json_path)          # -> json_path.with_suffix(".zip")
    extracted = await adapter.unpack(zip_path)        # -> scratch directory
"""

import logging
import time
from pathlib import Path

from journal_backup.adapters.base import Archiver, BlobStore
from journal_backup.errors import CompressionError, UnsupportedPlatformError
from journal_backup.formatting import compression_ratio, format_file_size

logger = logging.getLogger(__name__)

ARCHIVE_MEMBER = "backup.json"
ARCHIVE_SUFFIX = ".zip"


def is_compressed(path: str | Path) -> bool:
    """Whether ``path`` looks like a compressed backup (by extension)."""
    return str(path).lower().endswith(ARCHIVE_SUFFIX)


class ArchiverAdapter:
    """Pack and unpack backup files through a ``BlobStore``.

    Args:
        blobs: Storage used for staging and results.
        archiver: Archive codec, or ``None`` where archiving is unsupported.
        cache_dir: Scratch area for staging and extraction.
    """

    def __init__(
        self,
        blobs: BlobStore,
        archiver: Archiver | None,
        cache_dir: Path,
    ) -> None:
        self._blobs = blobs
        self._archiver = archiver
        self._cache_dir = Path(cache_dir)

    @property
    def supported(self) -> bool:
        return self._archiver is not None

    async def pack(self, source: Path, dest: Path | None = None) -> Path:
        """Compress ``source`` into an archive and return the archive path.

        Returns ``source`` unchanged when archiving is unsupported; callers
        detect that by comparing paths.

        Raises:
            CompressionError: If staging or compression fails.
        """
        source = Path(source)
        if self._archiver is None:
            logger.info("Compression not supported on this platform, returning original file")
            return source

        dest = Path(dest) if dest is not None else source.with_suffix(ARCHIVE_SUFFIX)
        staging_dir = self._cache_dir / "temp-backup"

        try:
            if not await self._blobs.exists(source):
                raise CompressionError(f"Source file does not exist: {source}")

            data = await self._blobs.read(source)
            staged = staging_dir / ARCHIVE_MEMBER
            await self._blobs.write(staged, data)

            archive = self._archiver.pack({ARCHIVE_MEMBER: await self._blobs.read(staged)})
            await self._blobs.write(dest, archive)
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionError(f"Failed to compress backup file: {e}") from e
        finally:
            await self._blobs.delete(staging_dir)

        logger.debug(
            f"Compressed {source.name}: {format_file_size(len(data))} -> "
            f"{format_file_size(len(archive))} "
            f"({compression_ratio(len(data), len(archive)):.2f}% saved)"
        )
        return dest

    async def unpack(self, archive_path: Path, dest_dir: Path | None = None) -> Path:
        """Extract ``archive_path`` into ``dest_dir`` and return the directory.

        Members are written through the ``BlobStore``; an empty archive
        returns a directory that lists as empty.  A failed extraction removes
        whatever was already written.

        Raises:
            UnsupportedPlatformError: If archiving is unavailable.
            CompressionError: If the archive cannot be read or extracted.
        """
        if self._archiver is None:
            raise UnsupportedPlatformError("Compression not supported on this platform")

        if dest_dir is None:
            dest_dir = self._cache_dir / f"extracted-backup-{time.time_ns()}"
        dest_dir = Path(dest_dir)

        try:
            blob = await self._blobs.read(Path(archive_path))
            files = self._archiver.unpack(blob)
            for name, data in files.items():
                await self._blobs.write(dest_dir / name, data)
        except Exception as e:
            await self._discard(dest_dir)
            raise CompressionError(f"Failed to decompress backup file: {e}") from e

        logger.debug(f"Extracted {len(files)} file(s) from {archive_path} to {dest_dir}")
        return dest_dir

    async def _discard(self, path: Path) -> None:
        """Remove a partial extraction (best-effort)."""
        try:
            await self._blobs.delete(path)
        except Exception as e:
            logger.warning(f"Could not remove partial extraction {path}: {e}")

"""Local filesystem ``BlobStore`` and zip ``Archiver``.

Usage:
    from journal_backup.adapters.files import LocalBlobStore, ZipArchiver

    blobs = LocalBlobStore()
    await blobs.write(Path("/tmp/a.json"), b"{}")
    archive = ZipArchiver().pack({"backup.json": b"{}"})
"""

import io
import shutil
import zipfile
from pathlib import Path, PurePosixPath


class LocalBlobStore:
    """``BlobStore`` backed by the local filesystem."""

    async def write(self, path: Path, data: bytes) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def read(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    async def delete(self, path: Path) -> None:
        """Delete a file or directory tree; missing paths are ignored."""
        path = Path(path)
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path, ignore_errors=True)
        else:
            path.unlink(missing_ok=True)

    async def list(self, path: Path) -> list[str]:
        path = Path(path)
        if not path.exists():
            return []
        return sorted(p.name for p in path.iterdir())

    async def exists(self, path: Path) -> bool:
        return Path(path).exists()

    async def size(self, path: Path) -> int:
        return Path(path).stat().st_size


class ZipArchiver:
    """``Archiver`` producing DEFLATE-compressed zip archives in memory."""

    def pack(self, files: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in files.items():
                zf.writestr(name, data)
        return buffer.getvalue()

    def unpack(self, blob: bytes) -> dict[str, bytes]:
        """Return member name -> contents, skipping directories.

        Raises:
            zipfile.BadZipFile: If ``blob`` is not a zip archive.
            ValueError: If a member name escapes the archive root.
        """
        files: dict[str, bytes] = {}
        with zipfile.ZipFile(io.BytesIO(blob)) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                member = PurePosixPath(info.filename)
                if member.is_absolute() or ".." in member.parts:
                    raise ValueError(f"Unsafe archive member: {info.filename}")
                files[info.filename] = zf.read(info)
        return files

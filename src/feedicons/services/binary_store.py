"""
Content-addressed binary store for favicon bytes.

Blobs are kept as plain files under a root folder, sharded by the first two
characters of their key:

    {folder}/{key[:2]}/{key}

Keys are derived from the favicon URL with :func:`key_for_url`, so the same
URL always maps to the same file. Writes go through a temporary file and an
atomic rename, so readers never observe a partially written blob. All
methods block and are meant to be called from a worker thread.
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from feedicons.exceptions import BinaryStoreError
from feedicons.models import StoreStats

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[0-9A-Za-z_-]+$")


def key_for_url(url: str) -> str:
    """Derive the store key for a favicon URL.

    Parameters
    ----------
    url : str
        Favicon URL exactly as used for lookups.

    Returns
    -------
    str
        Lowercase hexadecimal MD5 digest of the UTF-8 encoded URL.
    """
    return hashlib.md5(url.encode("utf-8")).hexdigest()


class BinaryStore:
    """Durable key to bytes store rooted at a folder.

    Parameters
    ----------
    folder : Path | str
        Root directory of the store. Created if it does not exist.

    Raises
    ------
    BinaryStoreError
        If the root directory cannot be created.
    """

    def __init__(self, folder: Path | str) -> None:
        self._folder = Path(folder)
        try:
            self._folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BinaryStoreError(
                f"Cannot create favicon store at {self._folder}",
                original_error=exc,
            ) from exc
        logger.debug("Favicon store ready at %s", self._folder)

    @property
    def folder(self) -> Path:
        """Root directory of the store."""
        return self._folder

    def path_for(self, key: str) -> Path:
        """Compute the on-disk path for *key*.

        Raises
        ------
        ValueError
            If *key* is empty or contains characters outside
            ``[0-9A-Za-z_-]``.
        """
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self._folder / key[:2] / key

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def put(self, key: str, data: bytes) -> None:
        """Persist *data* under *key*, replacing any previous blob.

        Raises
        ------
        BinaryStoreError
            If the blob cannot be written.
        """
        path = self.path_for(key)
        tmp_path = path.with_name(f".{key}.tmp.{uuid4()}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_path)
            raise BinaryStoreError(
                f"Failed to write blob {key}", key=key, original_error=exc
            ) from exc
        logger.debug("Stored %d bytes under %s", len(data), key)

    def get(self, key: str) -> bytes | None:
        """Return the blob stored under *key*, or ``None`` if absent.

        Raises
        ------
        BinaryStoreError
            If the blob exists but cannot be read.
        """
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise BinaryStoreError(
                f"Failed to read blob {key}", key=key, original_error=exc
            ) from exc

    def contains(self, key: str) -> bool:
        """Whether a blob is stored under *key*."""
        return self.path_for(key).is_file()

    def delete(self, key: str) -> bool:
        """Remove the blob stored under *key*.

        Returns
        -------
        bool
            ``True`` if a blob was removed, ``False`` if none existed.

        Raises
        ------
        BinaryStoreError
            If the blob exists but cannot be removed.
        """
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise BinaryStoreError(
                f"Failed to delete blob {key}", key=key, original_error=exc
            ) from exc
        return True

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _iter_blobs(self) -> list[Path]:
        if not self._folder.is_dir():
            return []
        return [
            path
            for path in self._folder.glob("*/*")
            if path.is_file() and not path.name.startswith(".")
        ]

    def stats(self) -> StoreStats:
        """Count stored blobs and sum their sizes.

        Returns
        -------
        StoreStats
            Entry count, total size and oldest/newest modification times.
        """
        entry_count = 0
        total_size_bytes = 0
        oldest_mtime: float | None = None
        newest_mtime: float | None = None

        for path in self._iter_blobs():
            try:
                stat = path.stat()
            except OSError:
                continue
            entry_count += 1
            total_size_bytes += stat.st_size
            if oldest_mtime is None or stat.st_mtime < oldest_mtime:
                oldest_mtime = stat.st_mtime
            if newest_mtime is None or stat.st_mtime > newest_mtime:
                newest_mtime = stat.st_mtime

        return StoreStats(
            entry_count=entry_count,
            total_size_bytes=total_size_bytes,
            oldest_entry=(
                datetime.fromtimestamp(oldest_mtime)
                if oldest_mtime is not None
                else None
            ),
            newest_entry=(
                datetime.fromtimestamp(newest_mtime)
                if newest_mtime is not None
                else None
            ),
        )

    def purge(self) -> int:
        """Delete every stored blob. The root directory is preserved.

        Returns
        -------
        int
            Total bytes freed.
        """
        bytes_freed = 0
        for path in self._iter_blobs():
            try:
                size = path.stat().st_size
                path.unlink()
                bytes_freed += size
            except OSError:
                logger.warning("Failed to delete stored blob: %s", path, exc_info=True)

        logger.info("Favicon store purged: freed %d bytes", bytes_freed)
        return bytes_freed

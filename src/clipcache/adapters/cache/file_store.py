"""File-based cache store implementing CachePort."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from clipcache.core.exceptions import ConflictError, StorageIOError
from clipcache.core.models import DEFAULT_TTL, CachedAsset
from clipcache.core.url_utils import split_file_name


if TYPE_CHECKING:
    from clipcache.core.ports import AssetWriter


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Suffix of files that are still being written
PARTIAL_SUFFIX = ".part"

# Chunk size for copying streams (64KB)
_CHUNK_SIZE = 64 * 1024


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


class FileCacheStore:
    """Directory of short-lived assets with TTL eviction.

    The directory listing is the source of truth. An in-memory index
    remembers the exact completion time of assets written by this process;
    files it does not know about fall back to their modification time.

    Writes go to a private ``.part`` file that is renamed into place once
    complete, so a half-written asset is never visible under its final
    name. The index lock only guards dict/set updates and is never held
    across file or network I/O.

    Attributes:
        cache_dir: Directory where cached files are stored.
        ttl: Retention window applied to every asset.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the store with a directory path.

        Args:
            cache_dir: Directory where cached files will be stored.
            ttl: Retention window used when sweep() is called without one.
            clock: Callable returning the current time. Defaults to UTC now.
        """
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._clock = clock or utc_now
        self._index: dict[str, CachedAsset] = {}
        self._writing: set[str] = set()
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def ensure_directory(self) -> None:
        """Create the cache directory if it does not exist."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _file_path(self, asset_id: str, extension: str) -> Path:
        """Get the final path for an asset."""
        return self.cache_dir / f"{asset_id}{extension}"

    def _partial_path(self, asset_id: str, extension: str) -> Path:
        """Get the private path used while an asset is being written."""
        return self.cache_dir / f"{asset_id}{extension}{PARTIAL_SUFFIX}"

    def put(
        self,
        asset_id: str,
        extension: str,
        source: Iterable[bytes] | BinaryIO,
    ) -> CachedAsset:
        """Store the bytes of a stream under asset_id.

        Args:
            asset_id: Identifier from FilenameAllocator.
            extension: File suffix including the dot.
            source: Binary file object or iterable of byte chunks.

        Returns:
            The resident asset, once the write has completed.

        Raises:
            ConflictError: If asset_id is already present.
            StorageIOError: If the write fails.
        """

        def write(path: Path) -> None:
            with path.open("wb") as f:
                for chunk in _iter_chunks(source):
                    f.write(chunk)

        return self.ingest(asset_id, extension, write)

    def ingest(
        self,
        asset_id: str,
        extension: str,
        writer: AssetWriter,
    ) -> CachedAsset:
        """Store an asset whose bytes are produced by writer.

        writer is called with the private partial path and must leave the
        complete payload there. If writer raises, the partial file is
        removed and the exception propagates (OSError is wrapped in
        StorageIOError).

        Args:
            asset_id: Identifier from FilenameAllocator.
            extension: File suffix including the dot.
            writer: Callable that writes the payload to a given path.

        Returns:
            The resident asset.

        Raises:
            ConflictError: If asset_id is already present or being written.
            StorageIOError: If a local file operation fails.
        """
        with self._lock:
            if asset_id in self._index or asset_id in self._writing:
                raise ConflictError(asset_id)
            self._writing.add(asset_id)

        try:
            size = self._write_atomically(asset_id, extension, writer)
        except BaseException:
            with self._lock:
                self._writing.discard(asset_id)
            raise

        asset = CachedAsset(
            id=asset_id,
            extension=extension,
            storage_path=self._file_path(asset_id, extension),
            created_at=self._clock(),
            size=size,
        )
        with self._lock:
            self._writing.discard(asset_id)
            self._index[asset_id] = asset

        logger.debug("Cached %s (%d bytes)", asset.file_name, size)
        return asset

    def _write_atomically(
        self, asset_id: str, extension: str, writer: AssetWriter
    ) -> int:
        """Run writer against the partial path and rename into place."""
        final_path = self._file_path(asset_id, extension)
        partial_path = self._partial_path(asset_id, extension)

        try:
            if final_path.exists():
                raise ConflictError(asset_id)
            self.ensure_directory()
            # Exclusive create reserves the partial path for this writer only
            with partial_path.open("xb"):
                pass
        except FileExistsError as e:
            raise ConflictError(asset_id) from e
        except OSError as e:
            raise StorageIOError(
                "Failed to write asset to local storage",
                asset_id=asset_id,
                cause=e,
            ) from e

        try:
            writer(partial_path)
            size = partial_path.stat().st_size
            os.replace(partial_path, final_path)
        except OSError as e:
            partial_path.unlink(missing_ok=True)
            raise StorageIOError(
                "Failed to write asset to local storage",
                asset_id=asset_id,
                cause=e,
            ) from e
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        return size

    def get(self, asset_id: str, extension: str) -> CachedAsset | None:
        """Look up a resident asset.

        Args:
            asset_id: Asset identifier.
            extension: Expected file suffix including the dot.

        Returns:
            The asset, or None if it is unknown, still being written,
            expired or already reclaimed.
        """
        with self._lock:
            asset = self._index.get(asset_id)

        if asset is None:
            asset = self._load_from_disk(asset_id, extension)
        if asset is None or asset.extension != extension:
            return None

        if asset.is_expired(self._clock(), self.ttl):
            return None

        if not asset.storage_path.is_file():
            # Reclaimed behind our back
            with self._lock:
                self._index.pop(asset_id, None)
            return None

        return asset

    def open_asset(
        self, asset_id: str, extension: str
    ) -> tuple[CachedAsset, BinaryIO] | None:
        """Open a resident asset for reading.

        Once opened, the handle stays readable even if a sweep deletes the
        file concurrently.

        Returns:
            Tuple of (asset, open binary file), or None if not resident.
        """
        asset = self.get(asset_id, extension)
        if asset is None:
            return None
        try:
            handle = asset.storage_path.open("rb")
        except FileNotFoundError:
            return None
        return asset, handle

    def _load_from_disk(self, asset_id: str, extension: str) -> CachedAsset | None:
        """Build a record for a file written by an earlier process."""
        path = self._file_path(asset_id, extension)
        try:
            stat = path.stat()
        except OSError:
            return None
        return CachedAsset(
            id=asset_id,
            extension=extension,
            storage_path=path,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            size=stat.st_size,
        )

    def sweep(
        self, now: datetime | None = None, ttl: timedelta | None = None
    ) -> int:
        """Reclaim every asset whose age exceeds ttl.

        Individual deletions that fail are logged and skipped. Partial files
        are reclaimed too once they are older than ttl and no writer in
        this process owns them.

        Args:
            now: Reference time. Defaults to the store's clock.
            ttl: Retention window. Defaults to the store's ttl.

        Returns:
            Number of assets reclaimed.
        """
        now = now if now is not None else self._clock()
        ttl = ttl if ttl is not None else self.ttl

        try:
            entries = list(os.scandir(self.cache_dir))
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning("Error reading cache directory: %s", e)
            return 0

        with self._lock:
            index = dict(self._index)
            writing = set(self._writing)

        reclaimed = 0
        for entry in entries:
            name = entry.name
            is_partial = name.endswith(PARTIAL_SUFFIX)
            parsed = split_file_name(
                name[: -len(PARTIAL_SUFFIX)] if is_partial else name
            )
            if parsed is None:
                continue
            asset_id, _extension = parsed
            if asset_id in writing:
                continue

            known = None if is_partial else index.get(asset_id)
            if known is not None:
                created_at = known.created_at
            else:
                try:
                    created_at = datetime.fromtimestamp(entry.stat().st_mtime, tz=UTC)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.warning("Error getting stats for file %s: %s", name, e)
                    continue

            if now - created_at <= ttl:
                continue

            try:
                os.unlink(entry.path)
            except FileNotFoundError:
                logger.debug("Expired file %s was already removed", name)
                continue
            except OSError as e:
                logger.warning("Error deleting file %s: %s", name, e)
                continue

            reclaimed += 1
            logger.info("Deleted expired file: %s", name)

        with self._lock:
            for asset_id, asset in list(self._index.items()):
                if asset.is_expired(now, ttl):
                    del self._index[asset_id]

        return reclaimed

    def list_assets(self) -> list[CachedAsset]:
        """List all resident assets, oldest first.

        Returns:
            Assets found in the cache directory (partial files excluded).
        """
        try:
            entries = list(os.scandir(self.cache_dir))
        except FileNotFoundError:
            return []

        with self._lock:
            index = dict(self._index)

        assets: list[CachedAsset] = []
        for entry in entries:
            parsed = split_file_name(entry.name)
            if parsed is None:
                continue
            asset_id, extension = parsed
            asset = index.get(asset_id) or self._load_from_disk(asset_id, extension)
            if asset is not None:
                assets.append(asset)

        return sorted(assets, key=lambda a: a.created_at)

    def statistics(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'total_size' (bytes) and 'file_count' (number of files).
        """
        assets = self.list_assets()
        return {
            "total_size": sum(a.size for a in assets),
            "file_count": len(assets),
        }


def _iter_chunks(source: Iterable[bytes] | BinaryIO) -> Iterable[bytes]:
    """Yield byte chunks from a file object or an iterable of chunks."""
    read = getattr(source, "read", None)
    if read is not None:
        return iter(lambda: read(_CHUNK_SIZE), b"")
    return source  # type: ignore[return-value]

"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable
    from datetime import datetime, timedelta
    from pathlib import Path
    from typing import BinaryIO

    from clipcache.core.models import CachedAsset

ProgressCallback = Callable[[int, int], None]

# Writes a complete payload to the given (temporary) path
AssetWriter = Callable[["Path"], None]


@runtime_checkable
class FetcherPort(Protocol):
    """Retrieves size metadata and payloads from a remote origin."""

    def probe_size(self, url: str) -> int:
        """Return the size reported by the origin, or 0 if unknown.

        Never raises: probe failures and timeouts degrade to 0.
        """
        ...

    def fetch_to_path(
        self,
        url: str,
        destination: Path,
        progress: ProgressCallback | None = None,
        cancelled: threading.Event | None = None,
    ) -> None:
        """Stream the full remote body to destination.

        Args:
            url: Resolved download URL.
            destination: Local file to create.
            progress: Optional callback function(bytes_downloaded, total_bytes).
            cancelled: Optional event; when set the download aborts.

        Raises:
            UpstreamError: If the origin fails or the download is aborted.
            StorageIOError: If the local write fails.

        On any failure destination does not exist afterwards.
        """
        ...


@runtime_checkable
class ResolverPort(Protocol):
    """Exchanges a media page URL for a concrete download URL."""

    def resolve(self, url: str) -> str:
        """Resolve a candidate page URL.

        Raises:
            ResolutionError: If the service fails.
            NoMediaFoundError: If the service lists no usable media.
        """
        ...


@runtime_checkable
class CachePort(Protocol):
    """Directory of resident assets with TTL eviction."""

    def put(
        self, asset_id: str, extension: str, source: Iterable[bytes]
    ) -> CachedAsset:
        """Store the bytes of source under asset_id.

        Raises:
            ConflictError: If asset_id is already present.
            StorageIOError: If the write fails.
        """
        ...

    def ingest(
        self, asset_id: str, extension: str, writer: AssetWriter
    ) -> CachedAsset:
        """Store an asset whose bytes are produced by writer.

        writer receives a private temporary path; the asset becomes
        visible only after writer returns successfully.
        """
        ...

    def get(self, asset_id: str, extension: str) -> CachedAsset | None:
        """Return a resident asset, or None if unknown, expired or reclaimed."""
        ...

    def open_asset(
        self, asset_id: str, extension: str
    ) -> tuple[CachedAsset, BinaryIO] | None:
        """Open a resident asset for reading, or None if not resident."""
        ...

    def sweep(
        self, now: datetime | None = None, ttl: timedelta | None = None
    ) -> int:
        """Reclaim every asset older than ttl.

        Returns:
            Number of assets reclaimed.
        """
        ...

    def list_assets(self) -> list[CachedAsset]:
        """List all resident assets, oldest first."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports download progress to the user.

    This protocol defines the contract for progress display adapters.
    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a download task.

        Args:
            name: Human-readable name for the task (asset file name).
            total: Total bytes to download (0 when unknown).

        Returns:
            A ProgressCallback to call with (bytes_downloaded, total_bytes).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a task as complete.

        Args:
            name: The task name passed to start_task().
        """
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _downloaded, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name  # Unused but required by protocol

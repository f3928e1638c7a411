"""HTTP asset fetcher using httpx."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import httpx

from clipcache.core.exceptions import StorageIOError, UpstreamError


if TYPE_CHECKING:
    import threading
    from pathlib import Path
    from types import TracebackType

    from clipcache.core.ports import ProgressCallback


logger = logging.getLogger(__name__)

# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024

DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_FETCH_TIMEOUT = 120.0


class HttpAssetFetcher:
    """Fetcher adapter for assets served over HTTP(S).

    Implements FetcherPort with a synchronous httpx client. The probe uses
    a HEAD request and never raises; the full fetch streams the body to
    disk and removes the destination on any failure.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional httpx client. If not provided, creates one that
                follows redirects and is closed by close().
            probe_timeout: Timeout in seconds for the size probe.
            fetch_timeout: Upper bound in seconds for a complete download.
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True)
        self.probe_timeout = probe_timeout
        self.fetch_timeout = fetch_timeout

    def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpAssetFetcher:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the client on exit."""
        self.close()

    def probe_size(self, url: str) -> int:
        """Get the asset size without downloading it.

        Args:
            url: Resolved download URL.

        Returns:
            Content-Length reported by the origin, or 0 when the header is
            missing or the probe fails or times out.
        """
        try:
            response = self._client.head(
                url, timeout=self.probe_timeout, follow_redirects=True
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Size probe failed for %s: %s", url, e)
            return 0

        if not response.is_success:
            logger.debug(
                "Size probe for %s returned HTTP %d", url, response.status_code
            )
            return 0

        return _parse_content_length(response.headers.get("content-length"))

    def fetch_to_path(
        self,
        url: str,
        destination: Path,
        progress: ProgressCallback | None = None,
        cancelled: threading.Event | None = None,
    ) -> None:
        """Download the asset to a local path with progress reporting.

        Args:
            url: Resolved download URL.
            destination: Local file to create (overwritten if present).
            progress: Optional callback function(bytes_downloaded, total_bytes).
            cancelled: Optional event; checked between chunks.

        Raises:
            UpstreamError: On non-success status, transport failure, timeout
                or cancellation.
            StorageIOError: If writing the local file fails.
        """
        try:
            self._stream_to_path(url, destination, progress, cancelled)
        except BaseException:
            destination.unlink(missing_ok=True)
            raise

    def _stream_to_path(
        self,
        url: str,
        destination: Path,
        progress: ProgressCallback | None,
        cancelled: threading.Event | None,
    ) -> None:
        deadline = time.monotonic() + self.fetch_timeout
        try:
            with self._client.stream(
                "GET", url, timeout=self.fetch_timeout, follow_redirects=True
            ) as response:
                if not response.is_success:
                    raise UpstreamError(
                        f"Failed to download: HTTP {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )

                total_size = _parse_content_length(
                    response.headers.get("content-length")
                )
                bytes_downloaded = 0

                with destination.open("wb") as f:
                    for chunk in response.iter_bytes(_CHUNK_SIZE):
                        if cancelled is not None and cancelled.is_set():
                            raise UpstreamError("Download cancelled", url=url)
                        if time.monotonic() > deadline:
                            raise UpstreamError("Timed out downloading asset", url=url)
                        f.write(chunk)
                        bytes_downloaded += len(chunk)
                        if progress:
                            progress(bytes_downloaded, total_size)
        except httpx.TimeoutException as e:
            logger.warning("Timed out downloading %s", url)
            raise UpstreamError("Timed out downloading asset", url=url, cause=e) from e
        except httpx.HTTPError as e:
            logger.warning("Error downloading %s: %s", url, e)
            raise UpstreamError("Failed to download asset", url=url, cause=e) from e
        except httpx.InvalidURL as e:
            logger.warning("Invalid download URL %r: %s", url, e)
            raise UpstreamError("Invalid download URL", url=url, cause=e) from e
        except OSError as e:
            raise StorageIOError(
                "Failed to write asset to local storage", cause=e
            ) from e


def _parse_content_length(value: str | None) -> int:
    """Parse a Content-Length header, treating anything odd as unknown."""
    if value is None:
        return 0
    try:
        size = int(value.strip())
    except ValueError:
        return 0
    return max(size, 0)

"""Core domain services for clipcache."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from clipcache.core.allocator import FilenameAllocator
from clipcache.core.exceptions import InvalidInputError, StorageIOError
from clipcache.core.formatting import format_duration, format_size
from clipcache.core.models import (
    DEFAULT_SIZE_THRESHOLD,
    DEFAULT_TTL,
    CachedAsset,
    RetrievalRequest,
    RetrievalResult,
    exceeds_threshold,
)
from clipcache.core.ports import (
    CachePort,
    FetcherPort,
    NullProgressReporter,
    ProgressReporter,
    ResolverPort,
)
from clipcache.core.url_utils import build_asset_url, extract_candidate_url


if TYPE_CHECKING:
    from clipcache.config import Settings


logger = logging.getLogger(__name__)


class RetrievalOrchestrator:
    """Serves one retrieval request end to end.

    Sweeps expired assets, extracts and resolves the candidate URL, probes
    the asset size and then either hands back a direct link (large assets)
    or caches the asset locally and returns its short-lived URL.
    """

    def __init__(
        self,
        resolver: ResolverPort,
        fetcher: FetcherPort,
        store: CachePort,
        allocator: FilenameAllocator | None = None,
        *,
        ttl: timedelta = DEFAULT_TTL,
        size_threshold: int = DEFAULT_SIZE_THRESHOLD,
        sweep_on_request: bool = True,
    ) -> None:
        self._resolver = resolver
        self._fetcher = fetcher
        self._store = store
        self._allocator = allocator or FilenameAllocator()
        self._ttl = ttl
        self._size_threshold = size_threshold
        self._sweep_on_request = sweep_on_request

    @classmethod
    def from_settings(cls, settings: Settings) -> RetrievalOrchestrator:
        """Create an orchestrator wired with the default adapters.

        Args:
            settings: Application settings.

        Returns:
            RetrievalOrchestrator with AioDlResolver, HttpAssetFetcher and
            FileCacheStore.
        """
        from clipcache.adapters.cache import FileCacheStore
        from clipcache.adapters.fetcher import HttpAssetFetcher
        from clipcache.adapters.resolver import AioDlResolver

        store = FileCacheStore(Path(settings.cache_dir), ttl=settings.ttl)
        store.ensure_directory()

        return cls(
            resolver=AioDlResolver(
                settings.service_api_url, timeout=settings.resolve_timeout
            ),
            fetcher=HttpAssetFetcher(
                probe_timeout=settings.probe_timeout,
                fetch_timeout=settings.fetch_timeout,
            ),
            store=store,
            ttl=settings.ttl,
            size_threshold=settings.size_threshold_bytes,
            sweep_on_request=settings.sweep_on_request,
        )

    @property
    def store(self) -> CachePort:
        """The cache store assets are written to."""
        return self._store

    @property
    def ttl(self) -> timedelta:
        """Retention window of cached assets."""
        return self._ttl

    def close(self) -> None:
        """Release the resolver's and fetcher's connections.

        Adapters without a close() method are left alone.
        """
        for adapter in (self._resolver, self._fetcher):
            close = getattr(adapter, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> RetrievalOrchestrator:
        """Enter context manager."""
        return self

    def __exit__(
        self, exc_type: object, exc_val: object, exc_tb: object
    ) -> None:
        """Close the adapters on exit."""
        self.close()

    def sweep(self) -> int:
        """Reclaim expired assets; failures are logged, never raised.

        Returns:
            Number of assets reclaimed.
        """
        try:
            return self._store.sweep(ttl=self._ttl)
        except Exception:
            logger.exception("Cache sweep failed")
            return 0

    def retrieve(
        self,
        request: RetrievalRequest,
        progress: ProgressReporter | None = None,
    ) -> RetrievalResult:
        """Retrieve the media referenced by a request.

        Args:
            request: The user input and the caller's base address.
            progress: Optional reporter for the download.

        Returns:
            A local URL for cached assets, or the resolved URL as a direct
            link when the asset exceeds the size threshold.

        Raises:
            InvalidInputError: If the input contains no URL.
            ResolutionError: If resolution fails (NoMediaFoundError when
                nothing downloadable is listed).
            UpstreamError: If the origin fails to deliver the asset.
            StorageIOError: If writing the local copy fails.
            ConflictError: If the allocated id already exists.
        """
        if self._sweep_on_request:
            self.sweep()

        candidate = extract_candidate_url(request.raw_input)
        if candidate is None:
            raise InvalidInputError(request.raw_input)

        download_url = self._resolver.resolve(candidate)

        size = self._fetcher.probe_size(download_url)
        if exceeds_threshold(size, self._size_threshold):
            logger.info(
                "Returning direct link for %s (%s)", candidate, format_size(size)
            )
            return RetrievalResult(
                video_url=download_url,
                original_url=download_url,
                file_size=format_size(size),
                is_direct_link=True,
            )

        asset = self._cache_asset(download_url, size, request, progress)
        logger.info("Cached %s as %s", candidate, asset.file_name)

        return RetrievalResult(
            video_url=build_asset_url(request.base_url, asset.file_name),
            original_url=download_url,
            file_size=format_size(asset.size),
            file_name=asset.file_name,
            expires_in=format_duration(self._ttl),
        )

    def _cache_asset(
        self,
        download_url: str,
        size: int,
        request: RetrievalRequest,
        progress: ProgressReporter | None,
    ) -> CachedAsset:
        """Download the asset into the cache store."""
        asset_id, extension = self._allocator.allocate(download_url)
        task_name = f"{asset_id}{extension}"
        reporter = progress or NullProgressReporter()

        def write(path: Path) -> None:
            callback = reporter.start_task(task_name, size)
            try:
                self._fetcher.fetch_to_path(
                    download_url, path, callback, request.cancelled
                )
            finally:
                reporter.finish_task(task_name)

        try:
            return self._store.ingest(asset_id, extension, write)
        except OSError as e:
            raise StorageIOError(
                "Failed to write asset to local storage",
                asset_id=asset_id,
                cause=e,
            ) from e

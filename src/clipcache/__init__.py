"""clipcache - A short-lived local mirror for remote media links.

This library resolves a media page link through a download service,
caches small assets locally for a few minutes and hands back a URL under
which they are served. Large assets are returned as direct links.

Example:
    >>> from clipcache import RetrievalOrchestrator, RetrievalRequest, get_settings
    >>> orchestrator = RetrievalOrchestrator.from_settings(get_settings())
    >>> result = orchestrator.retrieve(
    ...     RetrievalRequest(
    ...         raw_input="look https://example.com/watch/123",
    ...         base_url="http://localhost:3000",
    ...     )
    ... )
    >>> result.video_url  # http://localhost:3000/uploads/<id>.mp4
"""

from clipcache.adapters.cache import FileCacheStore
from clipcache.adapters.fetcher import HttpAssetFetcher
from clipcache.adapters.resolver import AioDlResolver
from clipcache.adapters.scheduler import BackgroundSweeper
from clipcache.config import Settings, get_settings
from clipcache.core.allocator import FilenameAllocator
from clipcache.core.exceptions import (
    ClipcacheError,
    ConflictError,
    InvalidInputError,
    NoMediaFoundError,
    ResolutionError,
    StorageIOError,
    UpstreamError,
)
from clipcache.core.models import CachedAsset, RetrievalRequest, RetrievalResult
from clipcache.core.ports import (
    CachePort,
    FetcherPort,
    NullProgressReporter,
    ProgressCallback,
    ProgressReporter,
    ResolverPort,
)
from clipcache.core.services import RetrievalOrchestrator
from clipcache.progress import RichProgressReporter


__version__ = "0.1.0"

__all__ = [
    "AioDlResolver",
    "BackgroundSweeper",
    "CachePort",
    "CachedAsset",
    "ClipcacheError",
    "ConflictError",
    "FetcherPort",
    "FileCacheStore",
    "FilenameAllocator",
    "HttpAssetFetcher",
    "InvalidInputError",
    "NoMediaFoundError",
    "NullProgressReporter",
    "ProgressCallback",
    "ProgressReporter",
    "ResolutionError",
    "ResolverPort",
    "RetrievalOrchestrator",
    "RetrievalRequest",
    "RetrievalResult",
    "RichProgressReporter",
    "Settings",
    "StorageIOError",
    "UpstreamError",
    "__version__",
    "get_settings",
]

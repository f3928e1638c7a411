"""Core domain module for clipcache.

This module contains pure Python domain models and port definitions.
It has no I/O dependencies and can be tested in isolation.
"""

from clipcache.core.models import CachedAsset, RetrievalRequest, RetrievalResult
from clipcache.core.ports import CachePort, FetcherPort, ProgressCallback, ResolverPort


__all__ = [
    "CachePort",
    "CachedAsset",
    "FetcherPort",
    "ProgressCallback",
    "ResolverPort",
    "RetrievalRequest",
    "RetrievalResult",
]

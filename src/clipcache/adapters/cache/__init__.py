"""Cache store adapters."""

from clipcache.adapters.cache.file_store import FileCacheStore


__all__ = ["FileCacheStore"]

"""Asset fetcher adapters."""

from clipcache.adapters.fetcher.http import HttpAssetFetcher


__all__ = ["HttpAssetFetcher"]

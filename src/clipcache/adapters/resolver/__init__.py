"""Resolution service adapters."""

from clipcache.adapters.resolver.aio_dl import AioDlResolver


__all__ = ["AioDlResolver"]

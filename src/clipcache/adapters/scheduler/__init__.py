"""Background scheduling adapters."""

from clipcache.adapters.scheduler.sweeper import BackgroundSweeper


__all__ = ["BackgroundSweeper"]

"""Progress display adapters."""

from clipcache.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]

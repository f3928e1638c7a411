"""Formatting utilities for domain logic."""

from __future__ import annotations

from datetime import timedelta


def format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        String such as "512.0 B", "2.0 MB" or "1.5 GB" (binary multiples).
    """
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def format_duration(duration: timedelta) -> str:
    """Format a retention window for the expiresIn hint.

    Args:
        duration: The duration to render.

    Returns:
        "5 minutes", "1 minute", "90 seconds" and so on. Whole minutes are
        rendered as minutes, everything else as (rounded) seconds.
    """
    seconds = round(duration.total_seconds())
    if seconds >= 60 and seconds % 60 == 0:
        return _plural(seconds // 60, "minute")
    return _plural(seconds, "second")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"

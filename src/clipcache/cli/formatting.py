"""Shared formatting helpers for CLI commands."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from rich.text import Text

from clipcache.core.formatting import format_duration


if TYPE_CHECKING:
    from datetime import datetime

    from clipcache.core.models import CachedAsset


# Assets with less time left than this are highlighted
EXPIRY_WARNING = timedelta(minutes=1)


def _format_age(asset: CachedAsset, now: datetime) -> str:
    """Format how long an asset has been resident (never negative)."""
    return format_duration(max(asset.age(now), timedelta(0)))


def _format_expires_in(asset: CachedAsset, now: datetime, ttl: timedelta) -> Text:
    """Format the remaining lifetime of an asset with color coding.

    Returns:
        Rich Text object:
        - "expired" in red once the asset is due for reclamation
        - remaining time in yellow when under a minute is left
        - remaining time in green otherwise
    """
    remaining = ttl - asset.age(now)
    if remaining < timedelta(0):
        return Text("expired", style="red")
    style = "yellow" if remaining < EXPIRY_WARNING else "green"
    return Text(format_duration(remaining), style=style)

"""Core domain models for clipcache.

These models are pure Python dataclasses with no I/O dependencies.
They represent the core domain concepts of the ephemeral asset cache.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path


# Assets larger than this are handed back as direct links (10 MiB)
DEFAULT_SIZE_THRESHOLD = 10 * 1024 * 1024

DEFAULT_TTL = timedelta(minutes=5)

DEFAULT_EXTENSION = ".mp4"


@dataclass(frozen=True, slots=True)
class CachedAsset:
    """One binary file resident in the cache.

    Attributes:
        id: Opaque random identifier (lowercase hex).
        extension: File suffix including the dot (e.g., ".mp4").
        storage_path: Location of the fully written file.
        created_at: When the write completed.
        size: Number of bytes on disk.

    Example:
        >>> asset = CachedAsset(
        ...     id="0123456789abcdef0123456789abcdef",
        ...     extension=".mp4",
        ...     storage_path=Path("uploads/0123456789abcdef0123456789abcdef.mp4"),
        ...     created_at=datetime(2024, 1, 1),
        ... )
        >>> asset.file_name
        '0123456789abcdef0123456789abcdef.mp4'
    """

    id: str
    extension: str
    storage_path: Path
    created_at: datetime
    size: int = 0

    def __post_init__(self) -> None:
        """Validate asset fields after initialization."""
        if not self.id:
            raise ValueError("CachedAsset id cannot be empty")

    @property
    def file_name(self) -> str:
        """Name under which the asset is stored and served."""
        return f"{self.id}{self.extension}"

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since the asset became resident."""
        return now - self.created_at

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Check whether the asset has outlived its retention window.

        The comparison is strict: an asset exactly ``ttl`` old is still
        resident.
        """
        return self.age(now) > ttl


@dataclass(frozen=True, slots=True)
class RetrievalRequest:
    """A single retrieval request, alive only while it is being served.

    Attributes:
        raw_input: Free-form text supplied by the user.
        base_url: Externally observable address of this service, used to
            build the returned local URL.
        cancelled: Optional event set when the caller goes away; in-flight
            downloads abort when it is set.
    """

    raw_input: str
    base_url: str
    cancelled: threading.Event | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """Outcome of a successful retrieval.

    Either a locally cached copy (``file_name`` and ``expires_in`` set) or a
    direct link to the origin (``is_direct_link`` true).
    """

    video_url: str
    original_url: str
    file_size: str
    file_name: str | None = None
    expires_in: str | None = None
    is_direct_link: bool = False

    def to_dict(self) -> dict[str, object]:
        """Render the JSON body returned by the download endpoint."""
        if self.is_direct_link:
            return {
                "videoUrl": self.video_url,
                "originalUrl": self.original_url,
                "isDirectLink": True,
                "fileSize": self.file_size,
            }
        return {
            "videoUrl": self.video_url,
            "originalUrl": self.original_url,
            "fileName": self.file_name,
            "expiresIn": self.expires_in,
            "fileSize": self.file_size,
        }


def exceeds_threshold(size: int, threshold: int = DEFAULT_SIZE_THRESHOLD) -> bool:
    """Decide whether an asset is too large to cache locally.

    An unknown size is reported as 0 and therefore always takes the
    caching path. The comparison is strict: exactly ``threshold`` bytes is
    still cached.

    Args:
        size: Probed size in bytes (0 when unknown).
        threshold: Largest size that is still cached.

    Returns:
        True if the asset should be returned as a direct link.
    """
    return size > threshold

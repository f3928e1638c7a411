"""Local identifiers for newly cached assets."""

from __future__ import annotations

import secrets
from pathlib import PurePosixPath
from urllib.parse import urlsplit

from clipcache.core.models import DEFAULT_EXTENSION


# 16 bytes -> 128 bits of entropy, 32 hex characters
ID_BYTES = 16


class FilenameAllocator:
    """Derives a random id and a file extension for a resolved URL.

    Ids come from the operating system's CSPRNG, so uniqueness holds
    without consulting the cache.
    """

    def __init__(self, default_extension: str = DEFAULT_EXTENSION) -> None:
        self.default_extension = default_extension

    def allocate(self, resolved_url: str) -> tuple[str, str]:
        """Allocate an (id, extension) pair.

        Args:
            resolved_url: Concrete download URL of the asset.

        Returns:
            Tuple of 32-character lowercase hex id and extension with dot.
        """
        return secrets.token_hex(ID_BYTES), self.extension_for(resolved_url)

    def extension_for(self, resolved_url: str) -> str:
        """Extension of the URL path, or the default extension."""
        try:
            path = urlsplit(resolved_url).path
        except ValueError:
            return self.default_extension

        suffix = PurePosixPath(path).suffix
        # Only plain alphanumeric suffixes end up in served file names
        stem = suffix[1:]
        if not stem or not (stem.isascii() and stem.isalnum()):
            return self.default_extension
        return suffix.lower()

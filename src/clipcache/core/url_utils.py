"""URL helpers for the retrieval flow.

This module contains the input parsing and URL building helpers that
the orchestrator delegates to.
"""

from __future__ import annotations

import re


# Secure-scheme prefix followed by everything up to the next whitespace
_CANDIDATE_PATTERN = re.compile(r"https\S+")

# 128-bit hex id followed by an optional alphanumeric extension
_FILE_NAME_PATTERN = re.compile(r"^(?P<id>[0-9a-f]{32})(?P<ext>\.[A-Za-z0-9]+)?$")


def extract_candidate_url(text: str) -> str | None:
    """Find the first URL-like substring in free-form input.

    Args:
        text: Raw user input, e.g. "check this out https://example.com/v/123".

    Returns:
        The first substring starting with "https" up to whitespace, or None.

    Example:
        >>> extract_candidate_url("check this out https://example.com/v/123")
        'https://example.com/v/123'
    """
    if not text:
        return None
    match = _CANDIDATE_PATTERN.search(text)
    return match.group(0) if match else None


def build_asset_url(base_url: str, file_name: str) -> str:
    """Build the public URL under which a cached asset is served.

    Args:
        base_url: Externally observable address (with or without trailing slash).
        file_name: Asset file name (id plus extension).

    Returns:
        URL of the form "{base}/uploads/{file_name}".
    """
    return f"{base_url.rstrip('/')}/uploads/{file_name}"


def split_file_name(file_name: str) -> tuple[str, str] | None:
    """Split a served file name into (id, extension).

    Args:
        file_name: Final path segment requested by a client.

    Returns:
        Tuple of (id, extension), or None if the name cannot belong to a
        cached asset (wrong shape, partial file, path tricks).
    """
    match = _FILE_NAME_PATTERN.match(file_name)
    if match is None:
        return None
    return match.group("id"), match.group("ext") or ""

"""Domain exceptions for clipcache.

All library errors inherit from ClipcacheError, allowing callers to catch
any retrieval failure with a single except clause. Every error carries a
``kind`` tag from a closed set, the orchestrator ``step`` that failed and
the underlying ``cause``, plus a recovery_hint property with guidance on
resolving the error.

Messages are safe to show to end users: they never contain local paths.
"""

from __future__ import annotations

from typing import ClassVar


class ClipcacheError(Exception):
    """Base class for all clipcache exceptions.

    Attributes:
        step: Name of the retrieval step that failed, if known.
        cause: The underlying exception, if any.
    """

    kind: ClassVar[str] = "internal"

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.step = step
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class InvalidInputError(ClipcacheError):
    """Raised when no URL can be extracted from the user's input.

    Attributes:
        raw_input: The text that was searched.
    """

    kind = "invalid_input"

    def __init__(self, raw_input: str) -> None:
        self.raw_input = raw_input
        super().__init__("Invalid URL format", step="extract")

    @property
    def recovery_hint(self) -> str:
        """Suggest the expected input shape."""
        return "Include a link starting with https:// in the input"


class ResolutionError(ClipcacheError):
    """Raised when the resolution service fails to produce a media URL.

    Attributes:
        url: The candidate URL that was being resolved.
    """

    kind = "resolution"

    def __init__(
        self,
        message: str,
        url: str,
        cause: BaseException | None = None,
    ) -> None:
        self.url = url
        super().__init__(message, step="resolve", cause=cause)

    @property
    def recovery_hint(self) -> str:
        """Resolution failures are usually transient."""
        return "Retry the request; the resolution service may be unavailable"


class NoMediaFoundError(ResolutionError):
    """Raised when the resolution service answers but lists no media."""

    kind = "no_media"

    def __init__(self, url: str) -> None:
        super().__init__("no download URL found", url=url)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the link itself."""
        return f"Check that {self.url} points to a public media page"


class UpstreamError(ClipcacheError):
    """Raised when the origin fails to deliver the asset.

    Attributes:
        url: The resolved download URL.
        status_code: HTTP status returned by the origin, if any.
    """

    kind = "upstream"

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, step="fetch", cause=cause)

    @property
    def recovery_hint(self) -> str | None:
        """Hint depends on whether the origin answered at all."""
        if self.status_code is not None and 400 <= self.status_code < 500:
            return "The download link may have expired; resolve it again"
        return "Retry later; the origin did not deliver the asset"


class StorageIOError(ClipcacheError):
    """Raised when writing an asset to local storage fails.

    Attributes:
        asset_id: Identifier of the asset being written, if allocated.
    """

    kind = "io"

    def __init__(
        self,
        message: str,
        asset_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.asset_id = asset_id
        super().__init__(message, step="store", cause=cause)

    @property
    def recovery_hint(self) -> str:
        """Point operators at the cache directory."""
        return "Check free space and permissions of the cache directory"


class ConflictError(ClipcacheError):
    """Raised when an asset id is already present in the cache.

    Identifiers carry 128 bits of entropy, so this indicates a bug rather
    than bad luck.

    Attributes:
        asset_id: The colliding identifier.
    """

    kind = "conflict"

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Asset '{asset_id}' already exists", step="store")

"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
shared fixtures for the test suite.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest


if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from clipcache.core.ports import ProgressCallback


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and services")
    config.addinivalue_line("markers", "cache: File cache store adapter")
    config.addinivalue_line("markers", "fetcher: HTTP asset fetcher adapter")
    config.addinivalue_line("markers", "resolver: Resolution service adapter")
    config.addinivalue_line("markers", "api: HTTP API")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeResolver:
    """ResolverPort returning a fixed URL, or raising a configured error."""

    def __init__(self, download_url: str = "https://cdn.example.com/clip.mp4") -> None:
        self.download_url = download_url
        self.error: Exception | None = None
        self.calls: list[str] = []
        self.closed = False

    def resolve(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.download_url

    def close(self) -> None:
        self.closed = True


class FakeFetcher:
    """FetcherPort serving in-memory payloads.

    probe_size() reports ``sizes[url]`` when set, else the payload length.
    fetch_to_path() writes ``payloads[url]`` or raises ``error`` after
    writing a few bytes (and cleaning up like the real adapter). It calls
    ``mid_write`` once the first bytes are on disk and aborts like the real
    adapter when the cancel event is set at that point.
    """

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}
        self.sizes: dict[str, int] = {}
        self.error: Exception | None = None
        self.fetched: list[str] = []
        self.cancel_events: list[threading.Event | None] = []
        self.mid_write: Callable[[], None] | None = None
        self.closed = False

    def probe_size(self, url: str) -> int:
        if url in self.sizes:
            return self.sizes[url]
        return len(self.payloads.get(url, b""))

    def fetch_to_path(
        self,
        url: str,
        destination: Path,
        progress: ProgressCallback | None = None,
        cancelled: threading.Event | None = None,
    ) -> None:
        from clipcache.core.exceptions import UpstreamError

        self.fetched.append(url)
        self.cancel_events.append(cancelled)
        payload = self.payloads.get(url, b"")
        destination.write_bytes(payload[:4])
        if self.mid_write is not None:
            self.mid_write()
        if cancelled is not None and cancelled.is_set():
            destination.unlink(missing_ok=True)
            raise UpstreamError("Download cancelled", url=url)
        if self.error is not None:
            destination.unlink(missing_ok=True)
            raise self.error
        destination.write_bytes(payload)
        if progress:
            progress(len(payload), len(payload))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant; advance() moves it forward."""
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()

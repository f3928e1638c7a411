"""Periodic eviction of expired assets on a background thread."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from types import TracebackType

    from clipcache.core.ports import CachePort


logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 60.0


class BackgroundSweeper:
    """Runs CachePort.sweep() every ``interval`` seconds.

    The sweeper has an explicit lifecycle: start() spawns a daemon thread,
    stop() signals it and joins. Waiting happens on an Event, so stop()
    takes effect immediately instead of after the current interval.

    Example:
        with BackgroundSweeper(store, interval=30):
            serve_forever()
    """

    def __init__(
        self, store: CachePort, interval: float = DEFAULT_SWEEP_INTERVAL
    ) -> None:
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self._store = store
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in the background. No-op if already running."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="clipcache-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("Sweeper started (every %.0fs)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Sweeper stopped")

    def run_once(self) -> int:
        """Run one sweep now; failures are logged, never raised."""
        try:
            return self._store.sweep()
        except Exception:
            logger.exception("Cache sweep failed")
            return 0

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            count = self.run_once()
            if count:
                logger.info("Sweep reclaimed %d expired asset(s)", count)

    def __enter__(self) -> BackgroundSweeper:
        """Start on enter."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop on exit."""
        self.stop()

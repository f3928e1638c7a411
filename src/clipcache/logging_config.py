"""Logging configuration."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging with timestamps and paths.
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    handler = RichHandler(
        rich_tracebacks=True,
        console=console,
        show_time=verbose,
        show_path=verbose,
    )
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized at %s", logging.getLevelName(log_level)
    )

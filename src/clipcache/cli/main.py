"""CLI commands for clipcache."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from clipcache.core.exceptions import ClipcacheError


if TYPE_CHECKING:
    from clipcache.adapters.cache import FileCacheStore
    from clipcache.config import Settings


app = typer.Typer(
    name="clipcache",
    help="Short-lived local mirror for remote media links.",
    no_args_is_help=True,
)


def load_settings(cache_dir: str | None = None) -> Settings:
    """Load settings for CLI commands, applying a --cache-dir override."""
    from clipcache.config import get_settings

    settings = get_settings()
    if cache_dir:
        settings = settings.model_copy(update={"cache_dir": Path(cache_dir)})
    return settings


def load_store(settings: Settings) -> FileCacheStore:
    """Open the cache directory named by settings, creating it if needed.

    Raises:
        typer.Exit: If the directory cannot be created.
    """
    from clipcache.adapters.cache import FileCacheStore

    store = FileCacheStore(settings.cache_dir, ttl=settings.ttl)
    try:
        store.ensure_directory()
    except OSError as e:
        typer.echo(f"Error: cannot create {settings.cache_dir}: {e}", err=True)
        raise typer.Exit(1) from None
    return store


def _exit_with_error(error: ClipcacheError) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    if error.recovery_hint:
        typer.echo(f"Hint: {error.recovery_hint}", err=True)
    return typer.Exit(1)


@app.command()
def serve(
    host: str | None = typer.Option(
        None, "--host", help="Bind address. Defaults to CLIPCACHE_HOST."
    ),
    port: int | None = typer.Option(
        None, "--port", "-p", help="Bind port. Defaults to CLIPCACHE_PORT."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from clipcache.api import create_app
    from clipcache.logging_config import setup_logging

    setup_logging(verbose)
    settings = load_settings()
    app_ = create_app(settings)

    # log_config=None keeps uvicorn on the rich root handler
    uvicorn.run(
        app_,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command()
def sweep(
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", "-d", help="Cache directory. Defaults to CLIPCACHE_CACHE_DIR."
    ),
) -> None:
    """Reclaim expired assets now."""
    settings = load_settings(cache_dir)
    store = load_store(settings)

    reclaimed = store.sweep()
    typer.echo(f"Reclaimed {reclaimed} expired asset(s) from {settings.cache_dir}")


@app.command()
def fetch(
    text: str = typer.Argument(..., help="Text containing a media link."),
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", "-d", help="Cache directory. Defaults to CLIPCACHE_CACHE_DIR."
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Address used in the returned URL. Defaults to CLIPCACHE_PUBLIC_BASE_URL.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Retrieve one media link from the shell and print the result."""
    from clipcache import RichProgressReporter
    from clipcache.core.models import RetrievalRequest
    from clipcache.core.services import RetrievalOrchestrator
    from clipcache.logging_config import setup_logging

    setup_logging(verbose)
    settings = load_settings(cache_dir)
    orchestrator = RetrievalOrchestrator.from_settings(settings)
    request = RetrievalRequest(
        raw_input=text,
        base_url=base_url
        or settings.public_base_url
        or f"http://localhost:{settings.port}",
    )

    try:
        with orchestrator, RichProgressReporter() as progress:
            result = orchestrator.retrieve(request, progress=progress)
    except ClipcacheError as e:
        raise _exit_with_error(e) from None

    typer.echo(json.dumps(result.to_dict(), indent=2))


def main() -> None:
    """Entry point for the CLI."""
    app()

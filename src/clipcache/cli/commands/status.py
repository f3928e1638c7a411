"""Status command for CLI."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from clipcache.cli.formatting import _format_age, _format_expires_in
from clipcache.cli.main import app, load_settings, load_store
from clipcache.core.formatting import format_size


@app.command()
def status(
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", "-d", help="Cache directory. Defaults to CLIPCACHE_CACHE_DIR."
    ),
) -> None:
    """Show resident assets with their age and remaining lifetime."""
    settings = load_settings(cache_dir)
    store = load_store(settings)

    assets = store.list_assets()
    if not assets:
        typer.echo(f"No cached assets in {settings.cache_dir}")
        return

    now = store.now()
    table = Table()
    table.add_column("File", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Age", justify="right")
    table.add_column("Expires in", justify="right")

    for asset in assets:
        table.add_row(
            asset.file_name,
            format_size(asset.size),
            _format_age(asset, now),
            _format_expires_in(asset, now, store.ttl),
        )

    stats = store.statistics()
    table.caption = (
        f"{stats['file_count']} asset(s), {format_size(stats['total_size'])} total"
    )

    console = Console(force_terminal=True)
    console.print(table)

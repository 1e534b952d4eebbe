"""Shared helpers for CLI commands: opening the store and reporting failures."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from slugswap.config import config
from slugswap.core.errors import MarketplaceError, ValidationError
from slugswap.core.listing_store import ListingStore

DB_OPTION_HELP = "Path to the listings SQLite database."


def open_store(db_path: Path | None, *, sweep: bool = True) -> ListingStore:
    """Open the store on *db_path*, or on the configured database.

    Unless *sweep* is False, overdue sold listings are removed before the
    store is handed back.
    """
    cfg = config.model_copy(update={"db_path": db_path}) if db_path else config
    store = ListingStore.from_config(cfg)
    if sweep:
        store.expire_due()
    return store


def fail(console: Console, exc: MarketplaceError) -> None:
    """Print a marketplace error and exit with status 1."""
    console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
    if isinstance(exc, ValidationError):
        for field, reason in exc.field_errors.items():
            console.print(f"  [red]{field}[/red]: {reason}")
    raise typer.Exit(code=1)

"""Owner and operator commands: ``mark-sold``, ``delete``, ``expire``."""

from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.console import Console

from slugswap.cli.commands._store import DB_OPTION_HELP, fail, open_store
from slugswap.config import config
from slugswap.core.errors import MarketplaceError

console = Console()


def mark_sold_cmd(
    listing_id: str = typer.Argument(..., help="The listing ID to mark sold."),
    requester: str = typer.Option(..., "--as", help="Identity id of the requester."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Mark a listing as sold.  It is removed automatically after the retention window."""
    store = open_store(db)
    try:
        listing = store.mark_sold(listing_id, requester)
    except MarketplaceError as exc:
        fail(console, exc)
        return

    expires = store.expires_at(listing_id)
    console.print(f"[bold green]Marked sold:[/bold green] {listing.title}")
    if expires is not None:
        console.print(f"[dim]Will be removed at {expires.isoformat()}.[/dim]")


def delete_cmd(
    listing_id: str = typer.Argument(..., help="The listing ID to delete."),
    requester: str = typer.Option(..., "--as", help="Identity id of the requester."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Delete an unsold listing."""
    try:
        open_store(db).delete(listing_id, requester)
    except MarketplaceError as exc:
        fail(console, exc)
        return
    console.print(f"[bold green]Deleted[/bold green] {listing_id}.")


def expire_cmd(
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Keep sweeping on an interval until interrupted (Ctrl+C to exit).",
    ),
    interval: float = typer.Option(
        None, "--interval", help="Sweep interval in seconds (defaults to config)."
    ),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Remove sold listings whose retention window has elapsed."""
    store = open_store(db, sweep=False)
    if not watch:
        removed = store.expire_due()
        pending = len(store.scheduler.pending())
        console.print(
            f"[bold]Expired:[/bold] {len(removed)}  [bold]Pending:[/bold] {pending}"
        )
        for listing_id in removed:
            console.print(f"  [dim]{listing_id}[/dim]")
        return

    poll = interval or config.sweep_interval_seconds
    store.expire_due()
    store.scheduler.start(poll)
    console.print(f"[bold]Sweeping every {poll:.0f}s[/bold] [dim](Ctrl+C to exit)[/dim]")
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        console.print("[dim]Stopping sweeper.[/dim]")
    finally:
        store.close()

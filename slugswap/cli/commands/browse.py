"""Read-only listing commands: ``browse``, ``mine``, ``show``, ``history``.

These never mutate the store; each invocation re-reads the database.
"""

from __future__ import annotations

from pathlib import Path

import pydantic
import typer
from rich.console import Console

from slugswap.cli.commands._store import DB_OPTION_HELP, fail, open_store
from slugswap.cli.render import ListingRenderer
from slugswap.core.errors import MarketplaceError, ValidationError
from slugswap.models.listings import ALL_CATEGORIES, ListingFilter

console = Console()


def browse_cmd(
    search: str = typer.Option("", "--search", "-q", help="Match title or description."),
    category: str = typer.Option(
        ALL_CATEGORIES, "--category", "-c", help="Category to show, or 'all'."
    ),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Browse listings that are still for sale."""
    try:
        listing_filter = ListingFilter(search_text=search, category=category)
    except pydantic.ValidationError as exc:
        fail(console, ValidationError.from_pydantic(exc, "filter"))
        return

    listings = open_store(db).list_available(listing_filter)
    ListingRenderer(console).print_listings(listings, title="For Sale")


def mine_cmd(
    owner_id: str = typer.Argument(..., help="Seller identity id."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """List every listing posted by a seller, sold or not."""
    listings = open_store(db).list_by_owner(owner_id)
    ListingRenderer(console).print_listings(listings, title=f"Listings by {owner_id}")


def show_cmd(
    listing_id: str = typer.Argument(..., help="The listing ID to show."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show one listing in detail."""
    store = open_store(db)
    try:
        listing = store.get(listing_id)
    except MarketplaceError as exc:
        fail(console, exc)
        return
    console.print(
        ListingRenderer(console).listing_panel(listing, store.expires_at(listing_id))
    )


def history_cmd(
    listing_id: str = typer.Argument(..., help="The listing ID whose history to show."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show the lifecycle transitions recorded for a listing."""
    events = open_store(db).history(listing_id)
    if not events:
        console.print(f"[dim]No history recorded for {listing_id}.[/dim]")
        return
    console.print(ListingRenderer(console).history_table(listing_id, events))

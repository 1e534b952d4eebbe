"""``slugswap post`` — create a new listing.

Builds a draft from the command-line options, stamps it with the seller's
identity, and prints the new listing id.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from slugswap.cli.commands._store import DB_OPTION_HELP, fail, open_store
from slugswap.cli.render import ListingRenderer
from slugswap.core.errors import MarketplaceError
from slugswap.models.identity import Identity
from slugswap.models.listings import Category, Condition, Size

console = Console()


def post_cmd(
    title: str = typer.Option(..., "--title", "-t", help="Listing title."),
    price: float = typer.Option(..., "--price", "-p", help="Asking price (must be > 0)."),
    category: Category = typer.Option(Category.SHIRT, "--category", "-c", help="Clothing category."),
    size: Size = typer.Option(Size.M, "--size", "-s", help="Garment size."),
    condition: Condition = typer.Option(
        Condition.GENTLY_USED, "--condition", help="Item condition."
    ),
    images: list[str] = typer.Option(
        [], "--image", "-i", help="Image reference (repeat up to 4 times)."
    ),
    description: str = typer.Option("", "--description", "-d", help="Free-text description."),
    owner_id: str = typer.Option(..., "--owner-id", help="Seller identity id."),
    username: str = typer.Option("", "--username", "-u", help="Seller display name."),
    avatar: str = typer.Option("", "--avatar", help="Seller profile picture."),
    db: Path = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Post a new listing for sale."""
    seller = Identity(
        id=owner_id,
        username=username or owner_id,
        profile_pic=avatar,
    )
    draft = {
        "title": title,
        "description": description,
        "price": price,
        "category": category,
        "size": size,
        "condition": condition,
        "images": images,
    }

    store = open_store(db)
    try:
        listing = store.create(seller, draft)
    except MarketplaceError as exc:
        fail(console, exc)
        return

    console.print(ListingRenderer(console).listing_panel(listing))
    # Print the listing_id plainly for scripting
    console.print(f"[bold]{listing.listing_id}[/bold]")

"""Rich terminal rendering for listings and their history.

Color scheme
------------
- green : available (unsold)
- dim   : sold, awaiting expiry
"""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from slugswap.models.events import ListingEvent
from slugswap.models.listings import Listing, ListingState

_STATE_LABELS: dict[ListingState, str] = {
    ListingState.UNSOLD: "[green]AVAILABLE[/green]",
    ListingState.SOLD: "[dim]SOLD[/dim]",
    ListingState.DELETED: "[red]DELETED[/red]",
}


def _fmt_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "-"


class ListingRenderer:
    """Renders listings as Rich tables and panels.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def listings_table(self, listings: list[Listing], title: str = "Listings") -> Table:
        table = Table(title=title)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Category")
        table.add_column("Seller")
        table.add_column("Status", justify="center")

        for listing in listings:
            table.add_row(
                listing.listing_id,
                listing.title,
                f"${listing.price:.2f}",
                f"{listing.category.value} / {listing.size.value}",
                listing.owner_display_name or listing.owner_id,
                _STATE_LABELS[listing.state],
            )
        return table

    def listing_panel(self, listing: Listing, expires_at: datetime | None = None) -> Panel:
        lines = [
            f"[bold]{listing.title}[/bold]  [green]${listing.price:.2f}[/green]",
            "",
            listing.description or "[dim]No description.[/dim]",
            "",
            f"[bold]Category:[/bold]  {listing.category.value}",
            f"[bold]Size:[/bold]      {listing.size.value}",
            f"[bold]Condition:[/bold] {listing.condition.value}",
            f"[bold]Seller:[/bold]    {listing.owner_display_name or listing.owner_id}",
            f"[bold]Images:[/bold]    {len(listing.images)}",
            f"[bold]Posted:[/bold]    {_fmt_time(listing.created_at)}",
            f"[bold]Status:[/bold]    {_STATE_LABELS[listing.state]}",
        ]
        if listing.is_sold:
            lines.append(f"[bold]Sold:[/bold]      {_fmt_time(listing.sold_at)}")
            lines.append(f"[bold]Expires:[/bold]   {_fmt_time(expires_at)}")
        return Panel(
            "\n".join(lines),
            title=f"[bold]{listing.listing_id}[/bold]",
            border_style="green" if not listing.is_sold else "dim",
            padding=(1, 2),
        )

    def history_table(self, listing_id: str, events: list[ListingEvent]) -> Table:
        table = Table(title=f"History of {listing_id}")
        table.add_column("When")
        table.add_column("Transition", style="cyan")
        table.add_column("Actor")
        for event in events:
            table.add_row(_fmt_time(event.timestamp_utc), event.transition, event.actor)
        return table

    def print_listings(self, listings: list[Listing], title: str = "Listings") -> None:
        if not listings:
            self.console.print("[dim]No listings found.[/dim]")
            return
        self.console.print(self.listings_table(listings, title=title))

"""Main Typer application — imports and registers all CLI commands.

Entry point: ``slugswap`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from slugswap.cli.commands.browse import browse_cmd, history_cmd, mine_cmd, show_cmd
from slugswap.cli.commands.manage import delete_cmd, expire_cmd, mark_sold_cmd
from slugswap.cli.commands.post import post_cmd
from slugswap.config import config

app = typer.Typer(
    name="slugswap",
    help="SlugSwap: student-to-student clothing marketplace.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _configure(
    log_level: str = typer.Option(
        config.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING...)."
    ),
) -> None:
    """Install a Rich log handler at the requested level."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=config.debug, show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="post", help="Post a new listing.")(post_cmd)
app.command(name="browse", help="Browse listings still for sale.")(browse_cmd)
app.command(name="mine", help="List a seller's listings.")(mine_cmd)
app.command(name="show", help="Show one listing.")(show_cmd)
app.command(name="history", help="Show a listing's lifecycle history.")(history_cmd)
app.command(name="mark-sold", help="Mark a listing as sold.")(mark_sold_cmd)
app.command(name="delete", help="Delete an unsold listing.")(delete_cmd)
app.command(name="expire", help="Remove sold listings past their retention window.")(expire_cmd)


@app.command(name="config", help="Show the active configuration.")
def config_cmd() -> None:
    """Print the effective SLUGSWAP_* settings."""
    console = Console()
    table = Table(title="SlugSwap Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for name, value in config.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

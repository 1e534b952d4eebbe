"""SlugSwap CLI — Typer-based command-line interface.

Provides the ``slugswap`` command with subcommands for posting, browsing,
marking sold, deleting and expiring listings.

All output uses Rich for formatted terminal display.
"""

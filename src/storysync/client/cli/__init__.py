"""Command-line interface for storysync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Store the API URL, token and data directory
- status: Show queue and cache status
- post: Submit a story, or queue it when offline
- sync: Submit queued stories to the server
- watch: Monitor connectivity and sync automatically on reconnect
- stories: List cached stories
- refresh: Fetch stories into the local cache
- queue: Inspect or clear queued stories
- cache: Warm or clear the response cache
"""

from __future__ import annotations

import click

from storysync.client.cli.cache import cache
from storysync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_data_dir,
    load_config,
    save_config,
    setup_logging,
)
from storysync.client.cli.configure import configure
from storysync.client.cli.post import post
from storysync.client.cli.queue import queue
from storysync.client.cli.stories import refresh, stories
from storysync.client.cli.sync import status, sync, watch


@click.group()
@click.version_option(package_name="storysync")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
def cli(verbose: bool) -> None:
    """storysync - Offline-first Story Map client."""
    setup_logging(verbose)


# Setup
cli.add_command(configure)
cli.add_command(status)

# Write path
cli.add_command(post)
cli.add_command(sync)
cli.add_command(watch)
cli.add_command(queue)

# Read path
cli.add_command(stories)
cli.add_command(refresh)
cli.add_command(cache)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_data_dir",
    "load_config",
    "save_config",
]

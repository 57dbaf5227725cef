"""Configuration utilities for storysync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from storysync.core.config import DEFAULT_API_URL, ServerConfig

if TYPE_CHECKING:
    from storysync.client.context import OfflineContext


def get_config_dir() -> Path:
    """Get the configuration directory for storysync.

    Returns:
        Path to ~/.storysync or equivalent.
    """
    return Path.home() / ".storysync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_data_dir() -> Path:
    """Get the directory holding the local databases.

    Returns:
        Path to the data directory (configured or default ~/.storysync/data).
    """
    config = load_config()
    if config.get("data_dir"):
        return Path(config["data_dir"]).expanduser().resolve()
    return get_config_dir() / "data"


def get_server_config() -> ServerConfig:
    """Build the server configuration, exiting if no token is configured."""
    config = load_config()
    if not config.get("token"):
        click.echo("Error: Not configured. Run 'storysync configure' first.", err=True)
        sys.exit(1)
    return ServerConfig(
        server_url=config.get("api_url") or DEFAULT_API_URL,
        token=config["token"],
    )


def setup_logging(verbose: bool) -> None:
    """Send storysync logs to stderr (debug level when verbose)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def open_context(initial_online: bool = True) -> OfflineContext:
    """Open the offline context for the configured server and data directory.

    Exits with an error if the local databases cannot be opened.
    """
    from storysync.client.context import OfflineContext
    from storysync.client.store import StoragePermissionError

    server_config = get_server_config()
    try:
        return OfflineContext(
            get_data_dir(), server_config, initial_online=initial_online
        )
    except StoragePermissionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

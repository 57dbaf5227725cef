"""Configuration command for storysync CLI.

Commands:
- configure: Store the API URL, token and data directory
"""

from __future__ import annotations

import click

from storysync.client.cli.config import get_config_file, load_config, save_config
from storysync.core.config import DEFAULT_API_URL


@click.command()
@click.option("--api-url", default=None, help=f"API base URL (default: {DEFAULT_API_URL}).")
@click.option("--token", default=None, help="Bearer token of the logged-in user.")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the local databases.",
)
def configure(api_url: str | None, token: str | None, data_dir: str | None) -> None:
    """Store connection settings.

    Options that are not given keep their current value. The token is
    prompted for when none is configured yet.
    """
    config = load_config()

    if api_url:
        config["api_url"] = api_url.rstrip("/")
    config.setdefault("api_url", DEFAULT_API_URL)

    if token:
        config["token"] = token
    elif not config.get("token"):
        config["token"] = click.prompt("Bearer token", hide_input=True)

    if data_dir:
        config["data_dir"] = data_dir

    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")
    click.echo(f"  API URL: {config['api_url']}")
    if config.get("data_dir"):
        click.echo(f"  Data directory: {config['data_dir']}")

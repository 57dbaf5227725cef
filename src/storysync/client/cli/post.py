"""Story submission command for storysync CLI.

Commands:
- post: Submit a story, or queue it when offline
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from storysync.client.cli.config import open_context


@click.command()
@click.argument("description")
@click.option(
    "--photo",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Photo to attach.",
)
@click.option("--lat", type=float, default=None, help="Latitude in decimal degrees.")
@click.option("--lon", type=float, default=None, help="Longitude in decimal degrees.")
@click.option("--offline", is_flag=True, help="Queue the story without contacting the server.")
def post(
    description: str,
    photo: Path,
    lat: float | None,
    lon: float | None,
    offline: bool,
) -> None:
    """Submit a new story.

    When the server is unreachable (or with --offline) the story is queued
    and submitted by the next 'storysync sync'.
    """
    from storysync.client.api import TransportError
    from storysync.client.drafts import PayloadValidationError, PhotoAttachment, StoryDraft

    draft = StoryDraft(
        description=description,
        photo=PhotoAttachment.from_path(photo),
        lat=lat,
        lon=lon,
    )

    async def _post() -> str:
        async with open_context(initial_online=not offline) as ctx:
            if offline:
                return (await ctx.coordinator.enqueue_offline(draft)).message
            await ctx.monitor.probe(ctx.client.health_check)
            result = await ctx.coordinator.submit(draft)
            if result.story is not None:
                return f"{result.message} (id: {result.story.id})"
            return result.message

    try:
        message = asyncio.run(_post())
    except PayloadValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except TransportError as e:
        click.echo(f"Error: Failed to add story: {e.message}. Please try again.", err=True)
        sys.exit(1)

    click.echo(message)

"""Story listing commands for storysync CLI.

Commands:
- stories: List cached stories with filters
- refresh: Fetch stories from the server into the local cache
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime

import click

from storysync.client.cli.config import open_context
from storysync.client.store import SORT_FIELDS, CachedItem


def _echo_stories(items: list[CachedItem], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return
    if not items:
        click.echo("No stories.")
        return
    for item in items:
        location = f" @ {item.lat:.4f},{item.lon:.4f}" if item.has_location else ""
        created = item.created_at.strftime("%Y-%m-%d %H:%M")
        click.echo(f"{item.id}  {created}  {item.name}{location}")
        click.echo(f"    {item.description}")


@click.command()
@click.option("--search", "-s", default=None, help="Match name or description.")
@click.option(
    "--location/--no-location",
    default=None,
    help="Only stories with (or without) a location.",
)
@click.option("--from", "date_from", type=click.DateTime(["%Y-%m-%d"]), default=None,
              help="Created on or after this date.")
@click.option("--to", "date_to", type=click.DateTime(["%Y-%m-%d"]), default=None,
              help="Created on or before this date.")
@click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default="newest",
              help="Sort order.")
@click.option("--order", type=click.Choice(["asc", "desc"]), default=None,
              help="Direction for name and created_at sorting.")
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
def stories(
    search: str | None,
    location: bool | None,
    date_from: datetime | None,
    date_to: datetime | None,
    sort_by: str,
    order: str | None,
    as_json: bool,
) -> None:
    """List stories from the local cache (works offline)."""
    from storysync.client.store import StoryQuery

    query = StoryQuery(
        search=search,
        has_location=location,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        sort_by=sort_by,
        order=order,
    )

    async def _list() -> list[CachedItem]:
        async with open_context(initial_online=False) as ctx:
            return await ctx.feed.stories(query)

    _echo_stories(asyncio.run(_list()), as_json)


@click.command()
@click.option("--location", is_flag=True, help="Only stories with a location.")
@click.option("--page", type=int, default=None, help="Page number.")
@click.option("--size", type=int, default=None, help="Page size.")
def refresh(location: bool, page: int | None, size: int | None) -> None:
    """Fetch stories from the server and cache them.

    Falls back to the cached stories when the server is unreachable.
    """
    from storysync.client.api import TransportError
    from storysync.client.feed import FeedResult

    async def _refresh() -> FeedResult:
        async with open_context() as ctx:
            return await ctx.feed.refresh(location=location or None, page=page, size=size)

    try:
        result = asyncio.run(_refresh())
    except TransportError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    if result.offline:
        click.echo(f"Offline: showing {len(result.stories)} cached stories.")
    else:
        click.echo(f"Fetched {len(result.stories)} stories.")

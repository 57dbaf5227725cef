"""Cache commands for storysync CLI.

Commands:
- cache warm: Download the precache manifest into the static partition
- cache clear: Delete cached responses and stories
"""

from __future__ import annotations

import asyncio

import click

from storysync.client.cli.config import open_context


@click.group()
def cache() -> None:
    """Manage the local caches."""


@cache.command("warm")
def warm_cache() -> None:
    """Download the app shell and assets for offline use."""

    async def _warm() -> int:
        async with open_context() as ctx:
            await ctx.install()
            return await ctx.cache.count(ctx.router.config.static_partition)

    count = asyncio.run(_warm())
    click.echo(f"Static cache holds {count} assets.")


@cache.command("clear")
@click.option("--stories", "include_stories", is_flag=True,
              help="Also delete cached stories.")
def clear_cache(include_stories: bool) -> None:
    """Delete every cached response.

    Queued stories are never touched.
    """

    async def _clear() -> tuple[int, int]:
        async with open_context(initial_online=False) as ctx:
            partitions = await ctx.cache.purge()
            stories = await ctx.store.clear() if include_stories else 0
            return partitions, stories

    partitions, stories = asyncio.run(_clear())
    click.echo(f"Deleted {partitions} cache partitions.")
    if include_stories:
        click.echo(f"Deleted {stories} cached stories.")

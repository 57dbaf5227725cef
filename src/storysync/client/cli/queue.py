"""Pending queue commands for storysync CLI.

Commands:
- queue list: Show queued stories
- queue clear: Drop every queued story
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import click

from storysync.client.cli.config import open_context
from storysync.client.store import PendingMutation


@click.group()
def queue() -> None:
    """Inspect the queue of stories waiting to be submitted."""


@queue.command("list")
def list_queue() -> None:
    """Show queued stories, oldest first."""

    async def _list() -> list[PendingMutation]:
        async with open_context(initial_online=False) as ctx:
            return await ctx.store.list_pending()

    mutations = asyncio.run(_list())
    if not mutations:
        click.echo("No pending stories.")
        return

    for mutation in mutations:
        queued_at = datetime.fromtimestamp(mutation.created_at).strftime("%Y-%m-%d %H:%M")
        photo = mutation.draft.photo
        photo_info = f"{photo.name} ({photo.size} bytes)" if photo else "no photo"
        click.echo(
            f"#{mutation.seq_id}  {mutation.status.value:<8}  {queued_at}  "
            f"{mutation.draft.description[:40]}  [{photo_info}]"
        )
        if mutation.last_error:
            click.echo(f"    attempts: {mutation.attempts}, last error: {mutation.last_error}")


@queue.command("clear")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation.")
def clear_queue(yes: bool) -> None:
    """Drop every queued story. They will never be submitted."""
    if not yes and not click.confirm("Queued stories will be lost. Continue?"):
        return

    async def _clear() -> int:
        async with open_context(initial_online=False) as ctx:
            return await ctx.coordinator.clear_pending_queue()

    count = asyncio.run(_clear())
    click.echo(f"Removed {count} pending stories.")

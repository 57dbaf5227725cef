"""Sync commands for storysync CLI.

Commands:
- sync: Submit queued stories to the server
- status: Show queue and cache status
- watch: Monitor connectivity and sync automatically on reconnect
"""

from __future__ import annotations

import asyncio
import sys

import click

from storysync.client.cli.config import open_context
from storysync.client.sync import SyncEvent, SyncEventType, SyncProgress, SyncResult


def _echo_event(event: SyncEvent) -> None:
    """Print a sync event as it happens."""
    if event.type == SyncEventType.SYNC_START:
        click.echo("Syncing pending stories...")
    elif event.type == SyncEventType.SYNC_PROGRESS:
        progress: SyncProgress = event.data
        click.echo(
            f"  [{progress.current}/{progress.total}] "
            f"{progress.success} synced, {progress.failed} failed"
        )
    elif event.type == SyncEventType.SYNC_COMPLETE:
        _echo_result(event.data)
    elif event.type == SyncEventType.SYNC_ERROR:
        click.echo(f"Sync error: {event.data['error']}", err=True)


def _echo_result(result: SyncResult) -> None:
    click.echo(f"Sync complete: {result.synced} synced, {result.failed} failed")
    for failure in result.errors:
        click.echo(f"  #{failure.seq_id}: {failure.error}", err=True)


@click.command()
@click.option("--notify", is_flag=True, help="Show a desktop notification when done.")
def sync(notify: bool) -> None:
    """Submit queued stories to the server.

    Stories are submitted one at a time, oldest first, including those whose
    last attempt failed. Failed stories stay queued with their error message.
    """
    from storysync.client.notifications import notify_error, notify_sync_complete
    from storysync.client.store import StorageError

    async def _sync() -> SyncResult | None:
        async with open_context() as ctx:
            ctx.coordinator.on_event(_echo_event)
            if not await ctx.monitor.probe(ctx.client.health_check):
                pending = await ctx.store.count_pending()
                click.echo(f"Offline: {pending} stories remain queued.")
                return None
            return await ctx.coordinator.sync_pending()

    try:
        result = asyncio.run(_sync())
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        if notify:
            notify_error(str(e))
        sys.exit(1)

    if result is not None and notify:
        notify_sync_complete(result.synced, result.failed)
    if result is not None and result.has_failures:
        sys.exit(1)


@click.command()
@click.option("--check", is_flag=True, help="Check connectivity with the server.")
def status(check: bool) -> None:
    """Show queue and cache status."""
    from storysync.core.types import MutationStatus

    async def _status() -> None:
        async with open_context() as ctx:
            if check:
                await ctx.monitor.probe(ctx.client.health_check)
            sync_status = await ctx.coordinator.get_status()
            syncing = await ctx.store.count_pending(MutationStatus.SYNCING)
            cached = await ctx.store.count()
            entries = await ctx.cache.count()

            click.echo(f"API URL: {ctx.server_config.server_url}")
            if check:
                click.echo(f"Connectivity: {ctx.monitor.state.value}")
            click.echo(f"Cached stories: {cached}")
            click.echo(f"Cached responses: {entries}")
            click.echo(f"Pending stories: {sync_status.pending_count}")
            click.echo(f"Failed stories: {sync_status.failed_count}")
            if syncing:
                click.echo(f"Interrupted stories: {syncing}")
            if check:
                click.echo(f"Can sync: {'yes' if sync_status.can_sync else 'no'}")

    asyncio.run(_status())


@click.command()
@click.option(
    "--interval",
    type=float,
    default=5.0,
    show_default=True,
    help="Seconds between connectivity checks.",
)
@click.option("--notify", is_flag=True, help="Show a desktop notification after each sync.")
def watch(interval: float, notify: bool) -> None:
    """Monitor connectivity and sync whenever the server comes back.

    Runs until interrupted with Ctrl+C.
    """
    from storysync.client.connectivity import ConnectivityEvent
    from storysync.client.notifications import notify_sync_complete

    def on_event(event: SyncEvent) -> None:
        _echo_event(event)
        if notify and event.type == SyncEventType.SYNC_COMPLETE:
            notify_sync_complete(event.data.synced, event.data.failed)

    async def _watch() -> None:
        async with open_context(initial_online=False) as ctx:
            ctx.coordinator.on_event(on_event)
            ctx.monitor.on_event(
                ConnectivityEvent.DISCONNECTED, lambda: click.echo("Offline.")
            )
            ctx.monitor.on_event(
                ConnectivityEvent.RECONNECTED, lambda: click.echo("Online.")
            )
            await ctx.monitor.run(ctx.client.health_check, interval)

    click.echo(f"Watching connectivity every {interval:.0f}s. Press Ctrl+C to stop.")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        click.echo("\nStopped.")

"""Sync coordinator for draining the pending-mutation log.

This module provides:
- SyncCoordinator: Queues offline drafts and submits them once online

The coordinator is the "brain" of the write path:
1. Offline drafts are validated and appended to the pending log
2. A reconnect (or an explicit call) starts a sync pass
3. Each queued mutation is submitted once, in FIFO order
4. Accepted mutations move from the log into the content cache
5. Rejected mutations stay queued with the error recorded

Single-flight:
    At most one pass runs at a time. The flag is set before the first
    await of a pass, so a second call made while one is running (even from
    asyncio.gather) returns None without touching any state. Mutations
    queued during a pass wait for the next one.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Callable

import httpx

from storysync.client.api import OfflineError, StoryClient, TransportError
from storysync.client.connectivity import ConnectivityEvent, ConnectivityMonitor
from storysync.client.drafts import StoryDraft
from storysync.client.store import LocalStore, PendingMutation, StorageError
from storysync.client.sync.types import (
    EnqueueResult,
    SubmissionResult,
    SyncEvent,
    SyncEventType,
    SyncFailure,
    SyncListener,
    SyncProgress,
    SyncResult,
    SyncStatus,
)
from storysync.core.config import ServerConfig
from storysync.core.types import MutationStatus

logger = logging.getLogger(__name__)

QUEUED_MESSAGE = "Story saved offline. Will sync when online."


class SyncCoordinator:
    """Orchestrates offline queueing and reconciliation of story submissions.

    Usage:
        store = LocalStore(data_dir / "store.db")
        monitor = ConnectivityMonitor()
        coordinator = SyncCoordinator(store, monitor)
        await coordinator.initialize("https://story-api.dicoding.dev/v1", token)

        # While offline
        await coordinator.enqueue_offline(draft)

        # Passes start automatically on reconnect, or explicitly
        result = await coordinator.sync_pending()
    """

    def __init__(
        self,
        store: LocalStore,
        monitor: ConnectivityMonitor,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Local store holding the pending log and content cache.
            monitor: Connectivity monitor gating and triggering passes.
            transport: Transport for the story client (default: network).
        """
        self._store = store
        self._monitor = monitor
        self._transport = transport

        # State
        self._is_syncing = False
        self._client: StoryClient | None = None
        self._listeners: list[SyncListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def is_syncing(self) -> bool:
        """Check if a pass is running."""
        return self._is_syncing

    @property
    def is_initialized(self) -> bool:
        """Check if credentials are set."""
        return self._client is not None

    @property
    def client(self) -> StoryClient | None:
        """Story client built by initialize()."""
        return self._client

    async def initialize(self, api_base_url: str, auth_token: str) -> None:
        """Set credentials and subscribe to reconnects.

        Safe to call again, e.g. to refresh the token. Mutations left in
        syncing by an interrupted process are returned to pending.

        Args:
            api_base_url: Base URL of the story API.
            auth_token: Bearer token of the logged-in user.
        """
        config = ServerConfig(server_url=api_base_url, token=auth_token)
        if self._client is not None and self._client.config.server_url == config.server_url:
            self._client.update_token(auth_token)
        else:
            if self._client is not None:
                await self._client.aclose()
            self._client = StoryClient(config, transport=self._transport)

        if self._unsubscribe is None:
            self._unsubscribe = self._monitor.on_event(
                ConnectivityEvent.RECONNECTED, self._on_reconnected
            )

        if not self._is_syncing:
            await self._store.reset_stale_syncing()
        logger.info("Sync coordinator initialized for %s", config.server_url)

    async def shutdown(self) -> None:
        """Unsubscribe from the monitor and close the story client."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # === Events ===

    def on_event(self, listener: SyncListener) -> Callable[[], None]:
        """Subscribe to sync events.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event_type: SyncEventType, data: object = None) -> None:
        event = SyncEvent(type=event_type, data=data)
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Sync listener failed on %s", event_type.value)

    async def _on_reconnected(self) -> None:
        logger.info("Back online - triggering sync")
        await self.sync_pending()

    # === Write paths ===

    async def enqueue_offline(self, draft: StoryDraft) -> EnqueueResult:
        """Validate a draft and append it to the pending log.

        Raises:
            PayloadValidationError: If the draft is incomplete.
            StorageError: If the draft could not be persisted.
        """
        draft.validate()
        mutation = await self._store.enqueue(draft)
        await self._emit(SyncEventType.QUEUED, mutation)
        return EnqueueResult(
            success=True,
            offline=True,
            message=QUEUED_MESSAGE,
            pending=mutation,
        )

    async def submit(self, draft: StoryDraft) -> SubmissionResult:
        """Submit a draft now if online, otherwise queue it.

        A network failure during submission queues the draft as well.

        Raises:
            PayloadValidationError: If the draft is incomplete.
            RejectedError: If the server refused the story.
            AuthenticationError: If the token is invalid.
        """
        draft.validate()

        if not self._monitor.is_online or self._client is None:
            queued = await self.enqueue_offline(draft)
            return SubmissionResult(queued=True, message=queued.message)

        try:
            story = await self._client.create_story(draft)
        except OfflineError as e:
            logger.warning("Submission failed, queueing for later: %s", e.message)
            queued = await self.enqueue_offline(draft)
            return SubmissionResult(queued=True, message=queued.message)

        if story is not None:
            await self._store.put(story)
        return SubmissionResult(queued=False, message="Story added successfully", story=story)

    # === Sync ===

    async def sync_pending(self) -> SyncResult | None:
        """Submit every queued mutation once.

        Returns:
            Counts and errors of the pass, or None when no pass ran
            (already running, offline, or not initialized).

        Raises:
            StorageError: If the local store fails mid-pass.
        """
        if self._is_syncing:
            logger.debug("Sync already in progress")
            return None
        if not self._monitor.is_online:
            logger.debug("Cannot sync - offline")
            return None
        if self._client is None:
            logger.warning("Sync coordinator not initialized with API credentials")
            return None

        self._is_syncing = True
        try:
            await self._emit(SyncEventType.SYNC_START)
            result = await self._run_pass(self._client)
        except Exception as e:
            logger.exception("Sync pass aborted")
            await self._recover_interrupted()
            self._is_syncing = False
            await self._emit(SyncEventType.SYNC_ERROR, {"error": str(e)})
            raise

        self._is_syncing = False
        logger.info("Sync complete: %d synced, %d failed", result.synced, result.failed)
        await self._emit(SyncEventType.SYNC_COMPLETE, result)
        return result

    async def _run_pass(self, client: StoryClient) -> SyncResult:
        result = SyncResult()
        await self._store.reset_stale_syncing()
        mutations = await self._store.list_pending(
            (MutationStatus.PENDING, MutationStatus.ERROR)
        )
        if not mutations:
            logger.debug("No pending stories to sync")
            return result

        logger.info("Syncing %d pending stories...", len(mutations))
        for mutation in mutations:
            error = await self._sync_one(client, mutation)
            if error is None:
                result.synced += 1
            else:
                result.failed += 1
                result.errors.append(SyncFailure(seq_id=mutation.seq_id, error=error))

            await self._emit(
                SyncEventType.SYNC_PROGRESS,
                SyncProgress(
                    current=result.synced + result.failed,
                    total=len(mutations),
                    success=result.synced,
                    failed=result.failed,
                ),
            )
        return result

    async def _recover_interrupted(self) -> None:
        # The mutation in flight when a pass aborts must be picked up again.
        try:
            await self._store.reset_stale_syncing()
        except StorageError as e:
            logger.warning("Could not recover interrupted mutations: %s", e)

    async def _sync_one(self, client: StoryClient, mutation: PendingMutation) -> str | None:
        """Submit one mutation.

        Returns:
            None on success, the error message on failure.
        """
        await self._store.update_pending(mutation.seq_id, status=MutationStatus.SYNCING)
        try:
            story = await client.create_story(
                mutation.draft, idempotency_key=mutation.idempotency_key
            )
        except TransportError as e:
            message = e.message or type(e).__name__
            logger.warning("Failed to sync story #%d: %s", mutation.seq_id, message)
            await self._store.update_pending(
                mutation.seq_id,
                status=MutationStatus.ERROR,
                attempts=mutation.attempts + 1,
                last_error=message,
                last_attempt_at=time.time(),
            )
            return message

        await self._store.complete_pending(mutation.seq_id, story)
        logger.info("Story #%d synced successfully", mutation.seq_id)
        return None

    async def retry_failed(self) -> SyncResult | None:
        """Reset failed mutations to pending and start a pass.

        Returns:
            Result of the pass, or None if nothing had failed or no pass ran.
        """
        count = await self._store.reset_failed()
        if count == 0:
            logger.info("No failed stories to retry")
            return None
        logger.info("Retrying %d failed stories...", count)
        return await self.sync_pending()

    # === Status ===

    async def get_status(self) -> SyncStatus:
        """Snapshot of the queue and coordinator state."""
        pending_count = await self._store.count_pending()
        failed_count = await self._store.count_pending(MutationStatus.ERROR)
        return SyncStatus(
            is_syncing=self._is_syncing,
            pending_count=pending_count,
            failed_count=failed_count,
            can_sync=self._monitor.is_online and pending_count > 0,
        )

    async def clear_pending_queue(self) -> int:
        """Drop every queued mutation.

        Returns:
            Number of mutations removed.
        """
        return await self._store.clear_pending()

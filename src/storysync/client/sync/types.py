"""Shared types and dataclasses for sync operations.

This module provides:
- SyncEventType, SyncEvent: Events published by the coordinator
- SyncProgress: Per-mutation progress of a pass
- SyncFailure, SyncResult: Outcome of a sync pass
- SyncStatus: Snapshot for status displays
- EnqueueResult, SubmissionResult: Outcomes of the write paths
- Type aliases for callbacks
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storysync.client.store import CachedItem, PendingMutation


class SyncEventType(str, Enum):
    """Types of sync events."""

    QUEUED = "queued"
    SYNC_START = "sync-start"
    SYNC_PROGRESS = "sync-progress"
    SYNC_COMPLETE = "sync-complete"
    SYNC_ERROR = "sync-error"


@dataclass
class SyncProgress:
    """Progress of a sync pass after one mutation was processed.

    Attributes:
        current: Number of mutations processed so far.
        total: Number of mutations in the pass.
        success: Mutations accepted so far.
        failed: Mutations failed so far.
    """

    current: int
    total: int
    success: int = 0
    failed: int = 0

    @property
    def percent(self) -> float:
        """Get progress percentage."""
        if self.total == 0:
            return 100.0
        return (self.current / self.total) * 100


@dataclass
class SyncFailure:
    """A mutation that failed during a pass."""

    seq_id: int
    error: str


@dataclass
class SyncResult:
    """Result of a sync pass."""

    synced: int = 0
    failed: int = 0
    errors: list[SyncFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """Check if any mutation failed."""
        return self.failed > 0


@dataclass
class SyncStatus:
    """Snapshot of the coordinator for status displays.

    Attributes:
        is_syncing: Whether a pass is running.
        pending_count: Mutations waiting to be submitted (any status).
        failed_count: Mutations whose last attempt failed.
        can_sync: Online and something to submit.
    """

    is_syncing: bool
    pending_count: int
    failed_count: int
    can_sync: bool


@dataclass
class EnqueueResult:
    """Result of queueing a draft for later submission."""

    success: bool
    offline: bool
    message: str
    pending: PendingMutation


@dataclass
class SubmissionResult:
    """Result of submitting a draft through the online path.

    Attributes:
        queued: True when the draft went to the pending log instead.
        story: Story confirmed by the server (None when queued or not returned).
        message: Human-readable outcome.
    """

    queued: bool
    message: str
    story: CachedItem | None = None


@dataclass
class SyncEvent:
    """An event published to coordinator listeners.

    Attributes:
        type: The kind of event.
        data: Event payload (PendingMutation, SyncProgress, SyncResult or error dict).
        timestamp: Unix timestamp when the event was created.
    """

    type: SyncEventType
    data: Any = None
    timestamp: float = field(default_factory=time.time)


# Type alias for event listeners; coroutine listeners are awaited
SyncListener = Callable[[SyncEvent], Awaitable[None] | None]

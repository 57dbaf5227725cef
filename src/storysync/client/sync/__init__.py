"""Sync operations for offline story submissions.

Architecture:
    StoryDraft → LocalStore (pending log) → SyncCoordinator → StoryClient

Components:
- **SyncCoordinator**: Queues drafts while offline, drains the log when online
- **Types**: Events, progress and result dataclasses shared with listeners
"""

from storysync.client.sync.coordinator import QUEUED_MESSAGE, SyncCoordinator
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

__all__ = [
    # Coordinator
    "QUEUED_MESSAGE",
    "SyncCoordinator",
    # Types and dataclasses
    "EnqueueResult",
    "SubmissionResult",
    "SyncEvent",
    "SyncEventType",
    "SyncFailure",
    "SyncListener",
    "SyncProgress",
    "SyncResult",
    "SyncStatus",
]

"""Shared types for storysync.

This module defines enums used across the store, the router and the
sync coordinator.
"""

from __future__ import annotations

from enum import Enum


class ConnectivityState(str, Enum):
    """Process-wide connectivity state."""

    ONLINE = "online"
    OFFLINE = "offline"


class MutationStatus(str, Enum):
    """Status of a queued mutation in the pending log."""

    PENDING = "pending"
    SYNCING = "syncing"
    ERROR = "error"


class ResourceClass(str, Enum):
    """Class of an intercepted request, selecting its cache policy."""

    BYPASS = "bypass"
    API = "api"
    IMAGE = "image"
    STATIC = "static"


# Header set on responses synthesized by the router instead of the network.
OFFLINE_HEADER = "X-Storysync-Offline"

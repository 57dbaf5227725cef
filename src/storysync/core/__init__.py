"""Core module - Shared configuration and types."""

from storysync.core.config import (
    DEFAULT_API_URL,
    DEFAULT_PRECACHE_MANIFEST,
    CacheConfig,
    ServerConfig,
)
from storysync.core.types import (
    OFFLINE_HEADER,
    ConnectivityState,
    MutationStatus,
    ResourceClass,
)

__all__ = [
    # Config
    "DEFAULT_API_URL",
    "DEFAULT_PRECACHE_MANIFEST",
    "CacheConfig",
    "ServerConfig",
    # Types
    "OFFLINE_HEADER",
    "ConnectivityState",
    "MutationStatus",
    "ResourceClass",
]

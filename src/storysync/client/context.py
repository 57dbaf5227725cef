"""Wiring of the offline-first components for one data directory.

OfflineContext opens the local store and the response cache under a data
directory, builds the router, transport, connectivity monitor, coordinator
and feed on top of them, and closes everything on exit.

Example:
    async with OfflineContext(data_dir, ServerConfig(url, token)) as ctx:
        result = await ctx.feed.refresh()
        await ctx.coordinator.submit(draft)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from storysync.client.api import StoryClient
from storysync.client.cache import ResponseCache
from storysync.client.connectivity import ConnectivityMonitor
from storysync.client.feed import StoryFeed
from storysync.client.notifications import Notification
from storysync.client.router import (
    Activate,
    CacheStrategyRouter,
    Install,
    OfflineFirstTransport,
)
from storysync.client.store import LocalStore
from storysync.client.sync import SyncCoordinator
from storysync.core.config import CacheConfig, ServerConfig

logger = logging.getLogger(__name__)

STORE_DB = "store.db"
CACHE_DB = "cache.db"


class OfflineContext:
    """Owns every offline-first component for one data directory."""

    def __init__(
        self,
        data_dir: Path,
        server_config: ServerConfig,
        cache_config: CacheConfig | None = None,
        network: httpx.AsyncBaseTransport | None = None,
        initial_online: bool = True,
        notifier: Callable[[Notification], Any] | None = None,
    ) -> None:
        """Open the store and the cache and build the components.

        Args:
            data_dir: Directory holding store.db and cache.db.
            server_config: API URL and token.
            cache_config: Cache partitions and classification rules.
            network: Transport used by the router to reach the network.
            initial_online: Initial state of the connectivity monitor.
            notifier: Receives push notifications (default: desktop).

        Raises:
            StoragePermissionError: If a database cannot be opened.
        """
        self.data_dir = Path(data_dir)
        self.server_config = server_config

        self.store = LocalStore(self.data_dir / STORE_DB)
        self.cache = ResponseCache(self.data_dir / CACHE_DB)
        self.router = CacheStrategyRouter(
            self.cache, cache_config, network=network, notifier=notifier
        )
        self.transport = OfflineFirstTransport(self.router)
        self.monitor = ConnectivityMonitor(initial_online=initial_online)
        self.coordinator = SyncCoordinator(self.store, self.monitor, transport=self.transport)
        self._feed: StoryFeed | None = None

    @property
    def client(self) -> StoryClient:
        """Story client shared with the coordinator."""
        client = self.coordinator.client
        if client is None:
            raise RuntimeError("OfflineContext not started")
        return client

    @property
    def feed(self) -> StoryFeed:
        """Read path backed by the content cache."""
        if self._feed is None:
            self._feed = StoryFeed(self.client, self.store)
        return self._feed

    async def start(self) -> None:
        """Purge outdated cache partitions and initialize the coordinator."""
        await self.router.dispatch(Activate())
        await self.coordinator.initialize(
            self.server_config.server_url, self.server_config.token
        )
        logger.debug("Offline context started in %s", self.data_dir)

    async def install(self) -> None:
        """Warm the static cache from the precache manifest."""
        await self.router.dispatch(Install())

    async def close(self) -> None:
        """Close every component."""
        await self.coordinator.shutdown()
        await self.router.aclose()
        self.store.close()
        self.cache.close()
        self._feed = None

    async def __aenter__(self) -> OfflineContext:
        """Context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

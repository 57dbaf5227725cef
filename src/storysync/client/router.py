"""Request interception with per-resource caching strategies.

This module provides:
- CacheStrategyRouter: Classifies requests and answers them from network or cache
- OfflineFirstTransport: httpx transport that sends every request through a router
- Install, Activate, Fetch, Push: Lifecycle messages accepted by dispatch()

Strategies:
    - api: network first; successful GETs are cached, failures fall back to
      the cache and then to a synthesized offline stand-in.
    - image: cache first; failures get an SVG placeholder.
    - static: cache first; failed navigations get the cached app shell,
      anything else a 503.
    - bypass: forwarded to the network untouched.

Responses produced by the router itself (stand-in, placeholder, 503) carry
the OFFLINE_HEADER so callers can tell them apart from server answers.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from storysync.client.cache import ENCODING_HEADERS, ResponseCache
from storysync.client.db import StorageError
from storysync.client.notifications import (
    Notification,
    push_notification,
    send_notification,
)
from storysync.core.config import CacheConfig
from storysync.core.types import OFFLINE_HEADER, ResourceClass

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "You are offline. Showing cached data."

PLACEHOLDER_SVG = (
    '<svg width="100" height="100"><rect width="100" height="100" fill="#ccc"/>'
    '<text x="50%" y="50%" text-anchor="middle" fill="#666">Offline</text></svg>'
)


# === Lifecycle messages ===


@dataclass(frozen=True)
class Install:
    """Warm the static partition from the precache manifest."""


@dataclass(frozen=True)
class Activate:
    """Delete partitions of previous cache versions."""


@dataclass(frozen=True)
class Fetch:
    """Answer an intercepted request."""

    request: httpx.Request


@dataclass(frozen=True)
class Push:
    """Display a push message."""

    payload: bytes | str | None


Message = Install | Activate | Fetch | Push


def parse_push_payload(payload: bytes | str | None) -> Notification:
    """Turn a push payload into a notification.

    The payload is JSON of the form ``{"title": ..., "options": {"body": ...}}``.
    Missing fields get defaults; a payload that is not a JSON object is
    shown as the notification body.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if not payload:
        return push_notification(None, None)

    try:
        data = json.loads(payload)
    except ValueError:
        return push_notification(None, payload)
    if not isinstance(data, dict):
        return push_notification(None, payload)

    options = data.get("options")
    body = options.get("body") if isinstance(options, dict) else None
    title = data.get("title")
    return push_notification(
        str(title) if title else None,
        str(body) if body else None,
    )


class CacheStrategyRouter:
    """Answers requests from network or cache depending on their class.

    The router never touches the local story store; it only owns the
    response cache partitions named by its CacheConfig.
    """

    def __init__(
        self,
        cache: ResponseCache,
        config: CacheConfig | None = None,
        network: httpx.AsyncBaseTransport | None = None,
        notifier: Callable[[Notification], Any] | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            cache: Response cache holding the partitions.
            config: Partition names, manifest and classification rules.
            network: Transport used to reach the network (default: HTTP).
            notifier: Called with the notification built for a push message
                (default: desktop notification).
        """
        self._cache = cache
        self._config = config or CacheConfig()
        self._network = network or httpx.AsyncHTTPTransport()
        self._notifier = notifier or send_notification

    @property
    def config(self) -> CacheConfig:
        """Cache configuration in use."""
        return self._config

    async def aclose(self) -> None:
        """Close the network transport."""
        await self._network.aclose()

    # === Classification ===

    def classify(self, request: httpx.Request) -> ResourceClass:
        """Decide which strategy handles a request.

        Images are recognized before API paths, since photo URLs such as
        ``/images/stories/x.jpg`` contain an API marker.
        """
        url = request.url
        path = url.path

        if url.scheme not in ("http", "https"):
            return ResourceClass.BYPASS
        if request.extensions.get("cache_bypass"):
            return ResourceClass.BYPASS
        if any(marker in path for marker in self._config.bypass_markers):
            return ResourceClass.BYPASS

        if (
            request.extensions.get("destination") == "image"
            or request.headers.get("accept", "").startswith("image/")
            or path.lower().endswith(self._config.image_extensions)
        ):
            return ResourceClass.IMAGE

        if any(marker in path for marker in self._config.api_markers):
            return ResourceClass.API

        return ResourceClass.STATIC

    @staticmethod
    def is_navigation(request: httpx.Request) -> bool:
        """Check if a request loads a page rather than a subresource."""
        if request.extensions.get("mode") == "navigate":
            return True
        return "text/html" in request.headers.get("accept", "")

    # === Lifecycle ===

    async def dispatch(self, message: Message) -> httpx.Response | None:
        """Handle a lifecycle message from the host runtime.

        Returns:
            The response for a Fetch message, None otherwise.
        """
        if isinstance(message, Fetch):
            return await self.on_request(message.request)
        if isinstance(message, Install):
            await self.on_install()
        elif isinstance(message, Activate):
            await self.on_activate()
        elif isinstance(message, Push):
            self.on_push(message.payload)
        else:
            raise TypeError(f"Unknown message: {message!r}")
        return None

    async def on_install(self) -> int:
        """Warm the static partition from the precache manifest.

        Assets that fail to download are logged and skipped.

        Returns:
            Number of assets cached.
        """
        partition = self._config.static_partition
        await self._cache.open(partition)

        cached = 0
        for url in self._config.precache_urls():
            request = httpx.Request("GET", url)
            try:
                response = await self._fetch(request)
            except httpx.RequestError as e:
                logger.warning("Failed to precache %s: %s", url, e)
                continue
            if not response.is_success:
                logger.warning("Failed to precache %s: HTTP %d", url, response.status_code)
                continue
            await self._cache.put(partition, request, response)
            cached += 1

        logger.info("Precached %d/%d assets into %s", cached, len(self._config.precache), partition)
        return cached

    async def on_activate(self) -> list[str]:
        """Delete every partition that is not part of the current version.

        Returns:
            Names of the deleted partitions.
        """
        expected = self._config.expected_partitions
        deleted = []
        for name in await self._cache.partitions():
            if name not in expected:
                logger.info("Deleting old cache partition: %s", name)
                await self._cache.delete_partition(name)
                deleted.append(name)
        return deleted

    def on_push(self, payload: bytes | str | None) -> Notification:
        """Show the notification carried by a push message."""
        notification = parse_push_payload(payload)
        logger.info("Push received: %s", notification.title)
        self._notifier(notification)
        return notification

    async def on_request(self, request: httpx.Request) -> httpx.Response:
        """Answer an intercepted request with the strategy of its class.

        Raises:
            httpx.RequestError: Only for bypassed requests.
        """
        resource = self.classify(request)
        logger.debug("%s %s -> %s", request.method, request.url, resource.value)

        if resource == ResourceClass.BYPASS:
            return await self._network.handle_async_request(request)
        if resource == ResourceClass.API:
            return await self._network_first(request)
        if resource == ResourceClass.IMAGE:
            return await self._cache_first_image(request)
        return await self._cache_first_static(request)

    # === Strategies ===

    async def _network_first(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await self._fetch(request)
        except httpx.RequestError as e:
            logger.warning("Network failed for %s, trying cache: %s", request.url, e)
            cached = await self._match(request)
            if cached is not None:
                return cached
            return self._offline_response(request)

        if request.method == "GET" and response.status_code == 200:
            await self._store(self._config.api_partition, request, response)
        return response

    async def _cache_first_image(self, request: httpx.Request) -> httpx.Response:
        cached = await self._match(request)
        if cached is not None:
            return cached

        try:
            response = await self._fetch(request)
        except httpx.RequestError as e:
            logger.debug("Image unavailable offline: %s (%s)", request.url, e)
            return self._placeholder_response(request)

        if request.method == "GET" and response.is_success:
            await self._store(self._config.image_partition, request, response)
        return response

    async def _cache_first_static(self, request: httpx.Request) -> httpx.Response:
        cached = await self._match(request)
        if cached is not None:
            return cached

        try:
            response = await self._fetch(request)
        except httpx.RequestError as e:
            logger.debug("Static asset unavailable offline: %s (%s)", request.url, e)
            if self.is_navigation(request):
                shell = await self._match(
                    httpx.Request("GET", self._config.app_shell_url), original=request
                )
                if shell is not None:
                    return shell
            return self._unavailable_response(request)

        if request.method == "GET" and response.status_code == 200:
            await self._store(self._config.static_partition, request, response)
        return response

    # === Helpers ===

    async def _fetch(self, request: httpx.Request) -> httpx.Response:
        """Send a request to the network and read the whole body."""
        response = await self._network.handle_async_request(request)
        try:
            await response.aread()
        finally:
            await response.aclose()
        return httpx.Response(
            response.status_code,
            headers=[
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() not in ENCODING_HEADERS
            ],
            content=response.content,
            request=request,
            extensions={
                key: value
                for key, value in response.extensions.items()
                if key in ("http_version", "reason_phrase")
            },
        )

    async def _match(
        self,
        request: httpx.Request,
        original: httpx.Request | None = None,
    ) -> httpx.Response | None:
        """Look a request up in any partition; cache failures count as a miss."""
        try:
            entry = await self._cache.match(request)
        except StorageError as e:
            logger.warning("Cache lookup failed for %s: %s", request.url, e)
            return None
        if entry is None:
            return None
        return entry.to_response(original or request)

    async def _store(
        self,
        partition: str,
        request: httpx.Request,
        response: httpx.Response,
    ) -> None:
        try:
            await self._cache.put(partition, request, response)
        except StorageError as e:
            logger.warning("Failed to cache %s: %s", request.url, e)

    @staticmethod
    def _offline_response(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={OFFLINE_HEADER: "1"},
            json={"error": True, "message": OFFLINE_MESSAGE, "listStory": []},
            request=request,
        )

    @staticmethod
    def _placeholder_response(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={OFFLINE_HEADER: "1", "Content-Type": "image/svg+xml"},
            content=PLACEHOLDER_SVG.encode(),
            request=request,
        )

    @staticmethod
    def _unavailable_response(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            503,
            headers={OFFLINE_HEADER: "1", "Content-Type": "text/plain"},
            content=b"Offline",
            request=request,
        )


class OfflineFirstTransport(httpx.AsyncBaseTransport):
    """httpx transport that answers every request through a CacheStrategyRouter.

    Example:
        transport = OfflineFirstTransport(router)
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://story-api.dicoding.dev/v1/stories")
    """

    def __init__(self, router: CacheStrategyRouter) -> None:
        self._router = router

    @property
    def router(self) -> CacheStrategyRouter:
        return self._router

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._router.on_request(request)

    async def aclose(self) -> None:
        # The router outlives the clients using it; its owner closes it.
        pass

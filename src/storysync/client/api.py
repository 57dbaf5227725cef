"""HTTP client for the story API.

This module provides:
- StoryClient: Async HTTP client for listing and submitting stories
- TransportError and subclasses: Failures of a request

Requests go through whatever transport the client is built with; in the
offline-first setup that is OfflineFirstTransport, so reads may be answered
from cache and a synthesized offline stand-in surfaces here as OfflineError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from storysync.client.drafts import StoryDraft
from storysync.client.schemas import StoryDetailResponse, StoryListResponse
from storysync.client.store import CachedItem
from storysync.core.config import ServerConfig
from storysync.core.types import OFFLINE_HEADER

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for failed requests."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class OfflineError(TransportError):
    """The server could not be reached (or the router answered offline)."""


class AuthenticationError(TransportError):
    """Authentication failed."""


class RejectedError(TransportError):
    """The server answered with an error status, an ``error: true`` body or an unreadable body."""


class StoryClient:
    """Async HTTP client for the story API."""

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the story client.

        Args:
            config: Server configuration with URL, token, and settings.
            transport: Transport used for every request (default: network).
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
            transport=transport,
        )

    @property
    def config(self) -> ServerConfig:
        """Server configuration in use."""
        return self._config

    def update_token(self, token: str) -> None:
        """Replace the bearer token for subsequent requests."""
        self._config.token = token
        self._client.headers["Authorization"] = f"Bearer {token}"

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> StoryClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise OfflineError(f"Network unreachable: {e}") from e
        except httpx.RequestError as e:
            raise RejectedError(f"Unreadable response: {e}") from e

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle API response and raise appropriate exceptions."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = str(data.get("message") or "")

        if response.headers.get(OFFLINE_HEADER):
            raise OfflineError(message or "You are offline", response.status_code)
        if response.status_code == 401:
            raise AuthenticationError(message or "Invalid or expired token", 401)
        if response.status_code >= 400:
            raise RejectedError(
                message or f"HTTP error! status: {response.status_code}",
                response.status_code,
            )
        if data.get("error"):
            raise RejectedError(message or "Request failed", response.status_code)
        return data

    # === Health check ===

    async def health_check(self) -> bool:
        """Check if the server is reachable.

        Any HTTP answer counts; only transport failures mean offline. The
        request is marked to bypass the cache router.

        Returns:
            True if the server answered.
        """
        try:
            await self._client.get("/", extensions={"cache_bypass": True})
        except httpx.TransportError:
            return False
        except httpx.RequestError as e:
            logger.debug("Health check got an unreadable answer: %s", e)
        return True

    # === Story operations ===

    async def list_stories(
        self,
        page: int | None = None,
        size: int | None = None,
        location: bool | None = None,
    ) -> list[CachedItem]:
        """List stories from the server.

        Args:
            page: Page number (1-based).
            size: Page size.
            location: True for stories with location only, False for all.

        Returns:
            List of story records.
        """
        params: dict[str, str] = {}
        if page is not None:
            params["page"] = str(page)
        if size is not None:
            params["size"] = str(size)
        if location is not None:
            params["location"] = "1" if location else "0"

        data = self._handle_response(await self._request("GET", "/stories", params=params))
        try:
            parsed = StoryListResponse.model_validate(data)
        except ValidationError as e:
            raise RejectedError(f"Malformed story list: {e}") from e
        return [story.to_item() for story in parsed.list_story]

    async def get_story(self, story_id: str) -> CachedItem:
        """Get a story by id.

        Raises:
            RejectedError: If the story does not exist.
        """
        data = self._handle_response(await self._request("GET", f"/stories/{story_id}"))
        try:
            parsed = StoryDetailResponse.model_validate(data)
        except ValidationError as e:
            raise RejectedError(f"Malformed story: {e}") from e
        if parsed.story is None:
            raise RejectedError(f"Story {story_id} not found", 404)
        return parsed.story.to_item()

    async def create_story(
        self,
        draft: StoryDraft,
        idempotency_key: str | None = None,
    ) -> CachedItem | None:
        """Submit a new story as a multipart POST.

        Args:
            draft: Story payload; the photo is sent as the ``photo`` field.
            idempotency_key: Sent as ``Idempotency-Key`` so the server can
                de-duplicate resubmissions.

        Returns:
            The server-confirmed story, or None if the response carries none.
        """
        headers = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        data = self._handle_response(
            await self._request(
                "POST",
                "/stories",
                data=draft.form_fields(),
                files=draft.form_files(),
                headers=headers,
            )
        )
        try:
            parsed = StoryDetailResponse.model_validate(data)
        except ValidationError as e:
            logger.warning("Story accepted but response unreadable: %s", e)
            return None
        if parsed.story is None:
            return None
        return parsed.story.to_item()

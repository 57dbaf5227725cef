"""Story listing with local fallback.

StoryFeed is the read path: every successful listing is written into the
content cache, and a listing that fails for connectivity is answered from
that cache instead. Reads never raise because the network is down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from storysync.client.api import OfflineError, StoryClient
from storysync.client.store import CachedItem, LocalStore, StoryQuery

logger = logging.getLogger(__name__)


@dataclass
class FeedResult:
    """Stories returned by a refresh.

    Attributes:
        stories: Stories from the server, or from the local cache when offline.
        offline: True when the server could not be reached.
    """

    stories: list[CachedItem] = field(default_factory=list)
    offline: bool = False


class StoryFeed:
    """Fetches stories and keeps the content cache up to date."""

    def __init__(self, client: StoryClient, store: LocalStore) -> None:
        self._client = client
        self._store = store

    async def refresh(
        self,
        location: bool | None = None,
        page: int | None = None,
        size: int | None = None,
    ) -> FeedResult:
        """Fetch stories from the server and cache them.

        Args:
            location: True for stories with location only, False for all.
            page: Page number (1-based).
            size: Page size.

        Returns:
            The fetched stories, or the cached ones if the server is unreachable.

        Raises:
            RejectedError: If the server refused the listing.
            AuthenticationError: If the token is invalid.
        """
        try:
            stories = await self._client.list_stories(page=page, size=size, location=location)
        except OfflineError as e:
            logger.warning("Showing cached stories: %s", e.message)
            cached = await self._store.query(StoryQuery(has_location=True if location else None))
            return FeedResult(stories=cached, offline=True)

        count = await self._store.put_many(stories)
        logger.debug("Cached %d stories", count)
        return FeedResult(stories=stories)

    async def stories(self, query: StoryQuery | None = None) -> list[CachedItem]:
        """Read stories from the content cache."""
        return await self._store.query(query)

    async def story(self, story_id: str) -> CachedItem | None:
        """Read one story, preferring the server and falling back to the cache."""
        try:
            story = await self._client.get_story(story_id)
        except OfflineError:
            return await self._store.get_by_id(story_id)
        await self._store.put(story)
        return story

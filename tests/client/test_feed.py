"""Tests for the story feed."""

from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
import pytest_asyncio
from pytest_httpx import HTTPXMock

from storysync.client.api import AuthenticationError, StoryClient
from storysync.client.feed import StoryFeed
from storysync.client.store import CachedItem, LocalStore, StoryQuery
from storysync.core.config import ServerConfig


def story_json(story_id: str, **overrides: Any) -> dict[str, Any]:
    """Create a story as sent by the API."""
    data: dict[str, Any] = {
        "id": story_id,
        "name": "Dimas",
        "description": "Lorem ipsum",
        "photoUrl": f"https://story-api.dicoding.dev/images/stories/{story_id}.jpg",
        "createdAt": "2022-01-08T06:34:18.598Z",
        "lat": -10.212,
        "lon": -16.002,
    }
    data.update(overrides)
    return data


def make_item(story_id: str, **overrides: Any) -> CachedItem:
    """Create a cached story."""
    fields: dict[str, Any] = {
        "id": story_id,
        "name": "Cached",
        "description": "From cache",
        "photo_url": None,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return CachedItem(**fields)


@pytest_asyncio.fixture
async def feed(store: LocalStore) -> AsyncIterator[StoryFeed]:
    """A feed over a client for http://test."""
    client = StoryClient(ServerConfig(server_url="http://test", token="token123"))
    yield StoryFeed(client, store)
    await client.aclose()


class TestRefresh:
    """Tests for StoryFeed.refresh()."""

    @pytest.mark.asyncio
    async def test_caches_fetched_stories(
        self, feed: StoryFeed, store: LocalStore, httpx_mock: HTTPXMock
    ) -> None:
        """Should write every fetched story into the cache."""
        httpx_mock.add_response(
            json={"error": False, "message": "ok", "listStory": [story_json("a"), story_json("b")]}
        )

        result = await feed.refresh()

        assert result.offline is False
        assert [s.id for s in result.stories] == ["a", "b"]
        assert await store.count() == 2

    @pytest.mark.asyncio
    async def test_offline_falls_back_to_cache(
        self, feed: StoryFeed, store: LocalStore, httpx_mock: HTTPXMock
    ) -> None:
        """Should answer from the cache when the server is unreachable."""
        await store.put(make_item("cached-1"))
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        result = await feed.refresh()

        assert result.offline is True
        assert [s.id for s in result.stories] == ["cached-1"]

    @pytest.mark.asyncio
    async def test_offline_location_filter(
        self, feed: StoryFeed, store: LocalStore, httpx_mock: HTTPXMock
    ) -> None:
        """Should keep only located stories when location was requested."""
        await store.put(make_item("located", lat=0.0, lon=0.0))
        await store.put(make_item("nowhere"))
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        result = await feed.refresh(location=True)

        assert [s.id for s in result.stories] == ["located"]

    @pytest.mark.asyncio
    async def test_auth_errors_propagate(
        self, feed: StoryFeed, httpx_mock: HTTPXMock
    ) -> None:
        """Should not hide an invalid token behind the cache."""
        httpx_mock.add_response(status_code=401, json={"error": True, "message": "Unauthorized"})

        with pytest.raises(AuthenticationError):
            await feed.refresh()


class TestStory:
    """Tests for StoryFeed.story() and stories()."""

    @pytest.mark.asyncio
    async def test_story_online(
        self, feed: StoryFeed, store: LocalStore, httpx_mock: HTTPXMock
    ) -> None:
        """Should fetch and cache a single story."""
        httpx_mock.add_response(
            url="http://test/stories/s1",
            json={"error": False, "message": "ok", "story": story_json("s1")},
        )

        story = await feed.story("s1")

        assert story is not None
        assert story.id == "s1"
        assert await store.get_by_id("s1") is not None

    @pytest.mark.asyncio
    async def test_story_offline(
        self, feed: StoryFeed, store: LocalStore, httpx_mock: HTTPXMock
    ) -> None:
        """Should read the cached copy when offline."""
        await store.put(make_item("s1"))
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        story = await feed.story("s1")

        assert story is not None
        assert story.name == "Cached"

    @pytest.mark.asyncio
    async def test_stories_reads_cache(self, feed: StoryFeed, store: LocalStore) -> None:
        """Should query the cache without touching the network."""
        await store.put(make_item("x", description="beach day"))
        await store.put(make_item("y", description="city"))

        stories = await feed.stories(StoryQuery(search="beach"))

        assert [s.id for s in stories] == ["x"]

"""Tests for the response cache partitions."""

from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest

from storysync.client.cache import ResponseCache, request_key


@pytest.fixture
def cache(tmp_path: Path) -> Iterator[ResponseCache]:
    """A ResponseCache in a temporary directory."""
    c = ResponseCache(tmp_path / "cache.db")
    yield c
    c.close()


def make_response(request: httpx.Request, body: bytes = b"hello", **headers: str) -> httpx.Response:
    """Create a read response for a request."""
    return httpx.Response(200, headers=headers, content=body, request=request)


class TestRequestKey:
    """Tests for request_key()."""

    def test_method_and_url(self) -> None:
        """Should combine method and full URL."""
        request = httpx.Request("GET", "http://app.test/stories?page=1")
        assert request_key(request) == "GET http://app.test/stories?page=1"


class TestResponseCache:
    """Tests for ResponseCache."""

    @pytest.mark.asyncio
    async def test_put_and_match(self, cache: ResponseCache) -> None:
        """Should return the cached status, headers and body."""
        request = httpx.Request("GET", "http://app.test/index.html")
        await cache.put("static-v1", request, make_response(request, b"<html>", **{"content-type": "text/html"}))

        entry = await cache.match(httpx.Request("GET", "http://app.test/index.html"))

        assert entry is not None
        assert entry.partition == "static-v1"
        response = entry.to_response(request)
        assert response.status_code == 200
        assert response.content == b"<html>"
        assert response.headers["content-type"] == "text/html"

    @pytest.mark.asyncio
    async def test_strips_encoding_headers(self, cache: ResponseCache) -> None:
        """Should not keep headers describing the wire encoding."""
        request = httpx.Request("GET", "http://app.test/app.js")
        response = httpx.Response(
            200,
            headers={"x-custom": "1"},
            content=b"console.log(1)",
            request=request,
        )
        await cache.put("static-v1", request, response)

        entry = await cache.match(request)
        assert entry is not None
        names = {name.lower() for name, _ in entry.headers}
        assert "content-length" not in names
        assert "x-custom" in names

    @pytest.mark.asyncio
    async def test_miss(self, cache: ResponseCache) -> None:
        """Should return None for an unknown request."""
        assert await cache.match(httpx.Request("GET", "http://app.test/nope")) is None

    @pytest.mark.asyncio
    async def test_method_is_part_of_identity(self, cache: ResponseCache) -> None:
        """Should not answer a POST with a cached GET."""
        request = httpx.Request("GET", "http://app.test/stories")
        await cache.put("api-v1", request, make_response(request))

        assert await cache.match(httpx.Request("POST", "http://app.test/stories")) is None

    @pytest.mark.asyncio
    async def test_last_writer_wins(self, cache: ResponseCache) -> None:
        """Should replace an entry written for the same request."""
        request = httpx.Request("GET", "http://app.test/stories")
        await cache.put("api-v1", request, make_response(request, b"first"))
        await cache.put("api-v1", request, make_response(request, b"second"))

        entry = await cache.match(request, partition="api-v1")
        assert entry is not None
        assert entry.body == b"second"
        assert await cache.count("api-v1") == 1

    @pytest.mark.asyncio
    async def test_match_in_partition(self, cache: ResponseCache) -> None:
        """Should restrict lookups to one partition when asked."""
        request = httpx.Request("GET", "http://app.test/logo.png")
        await cache.put("images-v1", request, make_response(request))

        assert await cache.match(request, partition="static-v1") is None
        assert await cache.match(request, partition="images-v1") is not None

    @pytest.mark.asyncio
    async def test_partitions_and_delete(self, cache: ResponseCache) -> None:
        """Should list partitions and delete one with its entries."""
        request = httpx.Request("GET", "http://app.test/a")
        await cache.open("empty-v1")
        await cache.put("static-v0", request, make_response(request))

        assert await cache.partitions() == ["empty-v1", "static-v0"]
        assert await cache.delete_partition("static-v0") is True
        assert await cache.delete_partition("static-v0") is False
        assert await cache.partitions() == ["empty-v1"]
        assert await cache.match(request) is None

    @pytest.mark.asyncio
    async def test_purge(self, cache: ResponseCache) -> None:
        """Should delete every partition."""
        request = httpx.Request("GET", "http://app.test/a")
        await cache.put("a-v1", request, make_response(request))
        await cache.put("b-v1", request, make_response(request))

        assert await cache.purge() == 2
        assert await cache.count() == 0
        assert await cache.partitions() == []

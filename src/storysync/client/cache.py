"""Named, versioned partitions of cached HTTP responses.

This module provides:
- ResponseCache: SQLite-backed request -> response store
- CacheEntry: One cached response
- request_key: Request identity used as cache key

Partitions are created on first write (or explicitly with open()) and
deleted as a whole, which is how version rotation purges old caches.
Writes for the same request identity are last-writer-wins.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass

import httpx

from storysync.client.db import SQLiteDatabase

logger = logging.getLogger(__name__)

# Headers describing the wire encoding of the original body, which is stored decoded.
ENCODING_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def request_key(request: httpx.Request) -> str:
    """Identity of a request in the cache: method and full URL."""
    return f"{request.method} {request.url}"


@dataclass
class CacheEntry:
    """A cached response.

    Attributes:
        partition: Name of the partition holding the entry.
        key: Request identity (see request_key()).
        status_code: HTTP status of the cached response.
        headers: Response headers (without transfer-encoding headers).
        body: Decoded response body.
        stored_at: When the entry was written (epoch seconds).
    """

    partition: str
    key: str
    status_code: int
    headers: list[tuple[str, str]]
    body: bytes
    stored_at: float

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> CacheEntry:
        """Create CacheEntry from database row."""
        return cls(
            partition=row["partition"],
            key=row["key"],
            status_code=row["status_code"],
            headers=[(name, value) for name, value in json.loads(row["headers"])],
            body=bytes(row["body"]),
            stored_at=row["stored_at"],
        )

    def to_response(self, request: httpx.Request) -> httpx.Response:
        """Rebuild an httpx response for the given request."""
        return httpx.Response(
            self.status_code,
            headers=self.headers,
            content=self.body,
            request=request,
        )


class ResponseCache(SQLiteDatabase):
    """SQLite-backed store of cache partitions."""

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS partitions (
                name TEXT PRIMARY KEY,
                created_at REAL NOT NULL
            );

            CREATE TABLE IF NOT EXISTS entries (
                partition TEXT NOT NULL,
                key TEXT NOT NULL,
                status_code INTEGER NOT NULL,
                headers TEXT NOT NULL,
                body BLOB NOT NULL,
                stored_at REAL NOT NULL,
                PRIMARY KEY (partition, key)
            );
            CREATE INDEX IF NOT EXISTS idx_entries_key ON entries(key);
        """)

    def _open(self, name: str) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO partitions (name, created_at) VALUES (?, ?)",
            (name, time.time()),
        )

    def _put(self, entry: CacheEntry) -> None:
        with self._transaction():
            self._open(entry.partition)
            self._conn.execute(
                """
                INSERT OR REPLACE INTO entries (
                    partition, key, status_code, headers, body, stored_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.partition,
                    entry.key,
                    entry.status_code,
                    json.dumps(entry.headers),
                    entry.body,
                    entry.stored_at,
                ),
            )

    def _match(self, key: str, partition: str | None) -> CacheEntry | None:
        if partition is None:
            row = self._conn.execute(
                "SELECT * FROM entries WHERE key = ? ORDER BY stored_at DESC LIMIT 1",
                (key,),
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT * FROM entries WHERE partition = ? AND key = ?",
                (partition, key),
            ).fetchone()
        return CacheEntry.from_row(row) if row else None

    def _partitions(self) -> list[str]:
        rows = self._conn.execute("SELECT name FROM partitions ORDER BY name").fetchall()
        return [row["name"] for row in rows]

    def _delete_partition(self, name: str) -> bool:
        with self._transaction():
            self._conn.execute("DELETE FROM entries WHERE partition = ?", (name,))
            cursor = self._conn.execute("DELETE FROM partitions WHERE name = ?", (name,))
        return cursor.rowcount > 0

    def _count(self, partition: str | None) -> int:
        if partition is None:
            row = self._conn.execute("SELECT COUNT(*) FROM entries").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM entries WHERE partition = ?", (partition,)
            ).fetchone()
        return int(row[0])

    async def open(self, name: str) -> None:
        """Create a partition if it doesn't exist."""
        await self._run(self._open, name)

    async def put(
        self,
        partition: str,
        request: httpx.Request,
        response: httpx.Response,
    ) -> CacheEntry:
        """Store a read response under the request's identity.

        The response body must already be read.
        """
        entry = CacheEntry(
            partition=partition,
            key=request_key(request),
            status_code=response.status_code,
            headers=[
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() not in ENCODING_HEADERS
            ],
            body=response.content,
            stored_at=time.time(),
        )
        await self._run(self._put, entry)
        logger.debug("Cached %s in %s", entry.key, partition)
        return entry

    async def match(
        self,
        request: httpx.Request,
        partition: str | None = None,
    ) -> CacheEntry | None:
        """Find the cached response for a request.

        Args:
            request: Request to look up.
            partition: Restrict the lookup to one partition (default: all,
                most recent entry wins).
        """
        return await self._run(self._match, request_key(request), partition)

    async def partitions(self) -> list[str]:
        """Names of all existing partitions."""
        return await self._run(self._partitions)

    async def delete_partition(self, name: str) -> bool:
        """Delete a partition and all its entries.

        Returns:
            True if the partition existed.
        """
        return await self._run(self._delete_partition, name)

    async def count(self, partition: str | None = None) -> int:
        """Number of cached entries, optionally within one partition."""
        return await self._run(self._count, partition)

    async def purge(self) -> int:
        """Delete every partition.

        Returns:
            Number of partitions deleted.
        """
        names = await self.partitions()
        for name in names:
            await self.delete_partition(name)
        logger.info("Purged %d cache partitions", len(names))
        return len(names)

"""Durable local store for cached stories and pending mutations.

This module provides:
- LocalStore: SQLite-backed store with an async interface
- CachedItem: Snapshot of a server-owned story
- PendingMutation: Queued story submission awaiting confirmation
- StoryQuery: Filter and sort options for cached stories
- StorageError, StoragePermissionError: Storage failures

Architecture:
    Two tables live in one SQLite database:

    - stories: the content cache, keyed by story id, indexed by creation
      time, name and the derived has_location flag.
    - pending_mutations: the write-ahead log of offline submissions, keyed
      by an AUTOINCREMENT sequence id (never reused), indexed by status
      and creation time.

    Every public method is a coroutine that runs its SQLite work in a worker
    thread under a re-entrant lock. Each call is atomic on its own; only
    complete_pending() touches both tables, in a single transaction.
"""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timezone
from typing import Any

from storysync.client.db import SQLiteDatabase, StorageError, StoragePermissionError
from storysync.client.drafts import PhotoAttachment, StoryDraft
from storysync.core.types import MutationStatus

logger = logging.getLogger(__name__)

SORT_FIELDS = ("newest", "oldest", "name", "created_at")

__all__ = [
    "CachedItem",
    "LocalStore",
    "PendingMutation",
    "StorageError",
    "StoragePermissionError",
    "StoryQuery",
    "parse_timestamp",
]


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp as sent by the API (``...Z`` accepted)."""
    if isinstance(value, datetime):
        return _as_utc(value)
    return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _lower_bound(value: date | datetime) -> float:
    if not isinstance(value, datetime):
        value = datetime.combine(value, dt_time.min)
    return _as_utc(value).timestamp()


def _upper_bound(value: date | datetime) -> float:
    # A bare date includes the whole day.
    if not isinstance(value, datetime):
        value = datetime.combine(value, dt_time.max)
    return _as_utc(value).timestamp()


@dataclass
class CachedItem:
    """Denormalized snapshot of a story owned by the server.

    Attributes:
        id: Identifier assigned by the server.
        name: Display name of the author.
        description: Story text.
        photo_url: URL of the story photo.
        created_at: Creation time on the server.
        lat: Latitude, or None.
        lon: Longitude, or None.
        cached_at: When this snapshot was written locally.
    """

    id: str
    name: str
    description: str
    photo_url: str | None
    created_at: datetime
    lat: float | None = None
    lon: float | None = None
    cached_at: datetime | None = None

    @property
    def has_location(self) -> bool:
        """True when both coordinates are present (0.0 counts)."""
        return self.lat is not None and self.lon is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> CachedItem:
        """Create CachedItem from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            photo_url=row["photo_url"],
            created_at=parse_timestamp(row["created_at"]),
            lat=row["lat"],
            lon=row["lon"],
            cached_at=datetime.fromtimestamp(row["cached_at"], tz=timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the API's field naming."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "photoUrl": self.photo_url,
            "createdAt": self.created_at.isoformat(),
            "lat": self.lat,
            "lon": self.lon,
            "hasLocation": self.has_location,
            "cachedAt": self.cached_at.isoformat() if self.cached_at else None,
        }


@dataclass
class PendingMutation:
    """A queued story submission.

    Attributes:
        seq_id: Local sequence id, assigned at enqueue time.
        idempotency_key: Client-generated key sent with every attempt.
        draft: The submission payload.
        status: pending, syncing or error.
        attempts: Number of failed submission attempts.
        last_error: Message of the last failure (always set when status is error).
        created_at: Enqueue timestamp (epoch seconds).
        last_attempt_at: Timestamp of the last failed attempt.
    """

    seq_id: int
    idempotency_key: str
    draft: StoryDraft
    status: MutationStatus
    attempts: int
    last_error: str | None
    created_at: float
    last_attempt_at: float | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> PendingMutation:
        """Create PendingMutation from database row."""
        photo = None
        if row["photo_data"] is not None:
            photo = PhotoAttachment.decode(
                row["photo_name"], row["photo_type"], row["photo_data"]
            )
        return cls(
            seq_id=row["seq_id"],
            idempotency_key=row["idempotency_key"],
            draft=StoryDraft(
                description=row["description"],
                photo=photo,
                lat=row["lat"],
                lon=row["lon"],
            ),
            status=MutationStatus(row["status"]),
            attempts=row["attempts"],
            last_error=row["last_error"],
            created_at=row["created_at"],
            last_attempt_at=row["last_attempt_at"],
        )


@dataclass
class StoryQuery:
    """Filter and sort options for LocalStore.query().

    Attributes:
        search: Case-insensitive substring matched against name and description.
        has_location: Keep only stories with (True) or without (False) location.
        date_from: Inclusive lower bound on created_at.
        date_to: Inclusive upper bound on created_at (a date covers the whole day).
        sort_by: "newest", "oldest", "name" or "created_at".
        order: "asc" or "desc" for "name" and "created_at".
    """

    search: str | None = None
    has_location: bool | None = None
    date_from: date | datetime | None = None
    date_to: date | datetime | None = None
    sort_by: str = "newest"
    order: str | None = None

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {self.sort_by}")
        if self.order not in (None, "asc", "desc"):
            raise ValueError(f"Unknown sort order: {self.order}")

    @property
    def descending(self) -> bool:
        """Effective sort direction."""
        if self.sort_by == "newest":
            return True
        if self.sort_by == "oldest":
            return False
        if self.order is None:
            return self.sort_by == "created_at"
        return self.order == "desc"


class LocalStore(SQLiteDatabase):
    """SQLite-backed store for the content cache and the pending log.

    Raises StoragePermissionError from the constructor when the database
    cannot be opened, and StorageError from any operation that fails.
    """

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS stories (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT NOT NULL,
                photo_url TEXT,
                created_at TEXT NOT NULL,
                created_ts REAL NOT NULL,
                lat REAL,
                lon REAL,
                has_location INTEGER NOT NULL,
                cached_at REAL NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_stories_created ON stories(created_ts);
            CREATE INDEX IF NOT EXISTS idx_stories_name ON stories(name);
            CREATE INDEX IF NOT EXISTS idx_stories_location ON stories(has_location);

            CREATE TABLE IF NOT EXISTS pending_mutations (
                seq_id INTEGER PRIMARY KEY AUTOINCREMENT,
                idempotency_key TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL,
                lat REAL,
                lon REAL,
                photo_name TEXT,
                photo_type TEXT,
                photo_data TEXT,
                status TEXT NOT NULL,
                attempts INTEGER NOT NULL DEFAULT 0,
                last_error TEXT,
                created_at REAL NOT NULL,
                last_attempt_at REAL
            );
            CREATE INDEX IF NOT EXISTS idx_pending_status ON pending_mutations(status);
            CREATE INDEX IF NOT EXISTS idx_pending_created ON pending_mutations(created_at);
        """)

    # === Content cache ===

    def _upsert(self, item: CachedItem, cached_at: float) -> None:
        self._conn.execute(
            """
            INSERT OR REPLACE INTO stories (
                id, name, description, photo_url, created_at, created_ts,
                lat, lon, has_location, cached_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                item.name,
                item.description,
                item.photo_url,
                _as_utc(item.created_at).isoformat(),
                _as_utc(item.created_at).timestamp(),
                item.lat,
                item.lon,
                int(item.has_location),
                cached_at,
            ),
        )

    def _put(self, item: CachedItem) -> CachedItem:
        now = time.time()
        self._upsert(item, now)
        return self._get_by_id(item.id)  # type: ignore[return-value]

    def _put_many(self, items: list[CachedItem]) -> int:
        now = time.time()
        with self._transaction():
            for item in items:
                self._upsert(item, now)
        return len(items)

    def _get_by_id(self, story_id: str) -> CachedItem | None:
        row = self._conn.execute(
            "SELECT * FROM stories WHERE id = ?", (story_id,)
        ).fetchone()
        return CachedItem.from_row(row) if row else None

    def _get_all(self) -> list[CachedItem]:
        rows = self._conn.execute(
            "SELECT * FROM stories ORDER BY created_ts DESC, id"
        ).fetchall()
        return [CachedItem.from_row(row) for row in rows]

    def _delete(self, story_id: str) -> bool:
        cursor = self._conn.execute("DELETE FROM stories WHERE id = ?", (story_id,))
        return cursor.rowcount > 0

    def _clear(self) -> int:
        cursor = self._conn.execute("DELETE FROM stories")
        return cursor.rowcount

    def _count(self) -> int:
        return int(self._conn.execute("SELECT COUNT(*) FROM stories").fetchone()[0])

    def _select(self, query: StoryQuery) -> list[CachedItem]:
        clauses: list[str] = []
        values: list[Any] = []
        if query.has_location is not None:
            clauses.append("has_location = ?")
            values.append(int(query.has_location))
        if query.date_from is not None:
            clauses.append("created_ts >= ?")
            values.append(_lower_bound(query.date_from))
        if query.date_to is not None:
            clauses.append("created_ts <= ?")
            values.append(_upper_bound(query.date_to))

        sql = "SELECT * FROM stories"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(sql, values).fetchall()
        return [CachedItem.from_row(row) for row in rows]

    async def put(self, item: CachedItem) -> CachedItem:
        """Write a full story snapshot, replacing any previous one.

        Returns:
            The stored item, with cached_at set.
        """
        return await self._run(self._put, item)

    async def put_many(self, items: Iterable[CachedItem]) -> int:
        """Write several snapshots in one transaction.

        Returns:
            Number of items written.
        """
        count = await self._run(self._put_many, list(items))
        logger.debug("Cached %d stories", count)
        return count

    async def get_by_id(self, story_id: str) -> CachedItem | None:
        """Get a cached story by id."""
        return await self._run(self._get_by_id, story_id)

    async def get_all(self) -> list[CachedItem]:
        """Get all cached stories, newest first."""
        return await self._run(self._get_all)

    async def delete(self, story_id: str) -> bool:
        """Remove a cached story.

        Returns:
            True if a story was removed.
        """
        return await self._run(self._delete, story_id)

    async def clear(self) -> int:
        """Remove all cached stories.

        Returns:
            Number of stories removed.
        """
        count = await self._run(self._clear)
        logger.info("Cleared %d cached stories", count)
        return count

    async def count(self) -> int:
        """Number of cached stories."""
        return await self._run(self._count)

    async def query(self, query: StoryQuery | None = None) -> list[CachedItem]:
        """Filter and sort cached stories.

        Filters apply in order: search text, location presence, date range.
        The sort is stable with ties broken by ascending id, so repeated
        queries over unchanged data return the same order.
        """
        query = query or StoryQuery()
        items = await self._run(self._select, query)

        if query.search:
            needle = query.search.casefold()
            items = [
                item
                for item in items
                if needle in item.name.casefold()
                or needle in item.description.casefold()
            ]

        items.sort(key=lambda item: item.id)
        if query.sort_by == "name":
            items.sort(key=lambda item: item.name, reverse=query.descending)
        else:
            items.sort(key=lambda item: item.created_at, reverse=query.descending)
        return items

    # === Pending mutation log ===

    def _insert_pending(self, draft: StoryDraft, key: str) -> PendingMutation:
        photo = draft.photo
        cursor = self._conn.execute(
            """
            INSERT INTO pending_mutations (
                idempotency_key, description, lat, lon,
                photo_name, photo_type, photo_data,
                status, attempts, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
            """,
            (
                key,
                draft.description,
                draft.lat,
                draft.lon,
                photo.name if photo else None,
                photo.content_type if photo else None,
                photo.encode() if photo else None,
                MutationStatus.PENDING.value,
                time.time(),
            ),
        )
        return self._get_pending(int(cursor.lastrowid))  # type: ignore[arg-type,return-value]

    def _get_pending(self, seq_id: int) -> PendingMutation | None:
        row = self._conn.execute(
            "SELECT * FROM pending_mutations WHERE seq_id = ?", (seq_id,)
        ).fetchone()
        return PendingMutation.from_row(row) if row else None

    def _list_pending(self, statuses: tuple[str, ...]) -> list[PendingMutation]:
        sql = "SELECT * FROM pending_mutations"
        if statuses:
            sql += f" WHERE status IN ({', '.join('?' for _ in statuses)})"
        sql += " ORDER BY seq_id"
        rows = self._conn.execute(sql, statuses).fetchall()
        return [PendingMutation.from_row(row) for row in rows]

    def _count_pending(self, statuses: tuple[str, ...]) -> int:
        sql = "SELECT COUNT(*) FROM pending_mutations"
        if statuses:
            sql += f" WHERE status IN ({', '.join('?' for _ in statuses)})"
        return int(self._conn.execute(sql, statuses).fetchone()[0])

    def _update_pending(
        self, seq_id: int, changes: dict[str, Any]
    ) -> PendingMutation | None:
        with self._transaction():
            current = self._get_pending(seq_id)
            if current is None:
                return None

            status = changes.get("status", current.status)
            last_error = changes.get("last_error", current.last_error)
            if status == MutationStatus.ERROR.value and not last_error:
                raise ValueError(f"Mutation {seq_id} set to error without last_error")

            assignments = ", ".join(f"{column} = ?" for column in changes)
            self._conn.execute(
                f"UPDATE pending_mutations SET {assignments} WHERE seq_id = ?",
                [*changes.values(), seq_id],
            )
            return self._get_pending(seq_id)

    def _delete_pending(self, seq_id: int) -> bool:
        cursor = self._conn.execute(
            "DELETE FROM pending_mutations WHERE seq_id = ?", (seq_id,)
        )
        return cursor.rowcount > 0

    def _complete_pending(
        self, seq_id: int, item: CachedItem | None
    ) -> CachedItem | None:
        with self._transaction():
            self._delete_pending(seq_id)
            if item is None:
                return None
            self._upsert(item, time.time())
            return self._get_by_id(item.id)

    def _reset_status(self, old: str, new: str) -> int:
        cursor = self._conn.execute(
            "UPDATE pending_mutations SET status = ? WHERE status = ?", (new, old)
        )
        return cursor.rowcount

    def _clear_pending(self) -> int:
        return self._conn.execute("DELETE FROM pending_mutations").rowcount

    async def enqueue(self, draft: StoryDraft) -> PendingMutation:
        """Append a draft to the pending log.

        The draft gets a fresh sequence id and idempotency key and starts in
        the pending status.

        Raises:
            StorageError: If the draft could not be persisted.
        """
        key = uuid.uuid4().hex
        mutation = await self._run(self._insert_pending, draft, key)
        logger.info("Queued mutation #%d (%s)", mutation.seq_id, key)
        return mutation

    async def get_pending(self, seq_id: int) -> PendingMutation | None:
        """Get a queued mutation by sequence id."""
        return await self._run(self._get_pending, seq_id)

    async def list_pending(
        self, status: MutationStatus | Iterable[MutationStatus] | None = None
    ) -> list[PendingMutation]:
        """List queued mutations in FIFO (sequence id) order.

        Args:
            status: Restrict to one or several statuses (default: all).
        """
        return await self._run(self._list_pending, _status_values(status))

    async def count_pending(
        self, status: MutationStatus | Iterable[MutationStatus] | None = None
    ) -> int:
        """Number of queued mutations, optionally restricted by status."""
        return await self._run(self._count_pending, _status_values(status))

    async def update_pending(
        self,
        seq_id: int,
        *,
        status: MutationStatus | None = None,
        attempts: int | None = None,
        last_error: str | None = None,
        last_attempt_at: float | None = None,
    ) -> PendingMutation | None:
        """Patch a queued mutation. Only provided fields are updated.

        Returns:
            The updated mutation, or None if it no longer exists.

        Raises:
            ValueError: If the patch would leave an error without a message.
        """
        changes: dict[str, Any] = {}
        if status is not None:
            changes["status"] = MutationStatus(status).value
        if attempts is not None:
            changes["attempts"] = attempts
        if last_error is not None:
            changes["last_error"] = last_error
        if last_attempt_at is not None:
            changes["last_attempt_at"] = last_attempt_at

        if not changes:
            return await self.get_pending(seq_id)
        return await self._run(self._update_pending, seq_id, changes)

    async def delete_pending(self, seq_id: int) -> bool:
        """Remove a mutation from the log.

        Returns:
            True if a mutation was removed.
        """
        return await self._run(self._delete_pending, seq_id)

    async def complete_pending(
        self, seq_id: int, item: CachedItem | None
    ) -> CachedItem | None:
        """Move a confirmed mutation from the log into the content cache.

        The log deletion and the cache write share one transaction, so the
        submission is never present in both tables or in neither.

        Args:
            seq_id: Mutation confirmed by the server.
            item: Canonical record returned by the server, if any.

        Returns:
            The cached item, or None if the server returned no record.
        """
        return await self._run(self._complete_pending, seq_id, item)

    async def reset_stale_syncing(self) -> int:
        """Return mutations left in syncing by an interrupted pass to pending.

        Returns:
            Number of mutations reset.
        """
        count = await self._run(
            self._reset_status, MutationStatus.SYNCING.value, MutationStatus.PENDING.value
        )
        if count:
            logger.warning("Recovered %d mutations interrupted mid-sync", count)
        return count

    async def reset_failed(self) -> int:
        """Move every errored mutation back to pending.

        Returns:
            Number of mutations reset.
        """
        return await self._run(
            self._reset_status, MutationStatus.ERROR.value, MutationStatus.PENDING.value
        )

    async def clear_pending(self) -> int:
        """Drop every queued mutation.

        Returns:
            Number of mutations removed.
        """
        count = await self._run(self._clear_pending)
        logger.warning("Cleared %d pending mutations", count)
        return count


def _status_values(
    status: MutationStatus | Iterable[MutationStatus] | None,
) -> tuple[str, ...]:
    if status is None:
        return ()
    if isinstance(status, MutationStatus):
        return (status.value,)
    return tuple(MutationStatus(s).value for s in status)

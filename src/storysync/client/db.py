"""SQLite plumbing shared by the local store and the response cache.

This module provides:
- SQLiteDatabase: Connection owner exposing blocking SQL through coroutines
- StorageError, StoragePermissionError: Storage failures

The connection runs in autocommit mode with WAL enabled. Callers run their
SQL in a worker thread under a re-entrant lock; any sqlite3.Error is
re-raised as StorageError so callers never depend on the engine's API.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """The local store failed (unavailable, locked, quota exceeded...)."""


class StoragePermissionError(StorageError):
    """The local store cannot be opened in this environment."""


class SQLiteDatabase:
    """Base class owning one SQLite connection."""

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the database and its schema.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StoragePermissionError: If the database cannot be opened.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except (OSError, sqlite3.Error) as e:
            raise StoragePermissionError(
                f"Local storage unavailable at {self._db_path}: {e}"
            ) from e

        logger.debug("Opened %s at %s", type(self).__name__, self._db_path)

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        raise NotImplementedError

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func: Callable[..., T], *args: Any) -> T:
        with self._lock:
            try:
                return func(*args)
            except sqlite3.Error as e:
                logger.error("%s failed: %s", func.__name__, e)
                raise StorageError(str(e)) from e

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

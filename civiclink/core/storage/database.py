"""SQLite connection management and the parameterized-query boundary."""

from __future__ import annotations

import logging
import sqlite3
import threading
import weakref
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from civiclink.core.exceptions import ConstraintViolationError, StorageUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    is_rep INTEGER NOT NULL DEFAULT 0,
    first_name TEXT,
    last_name TEXT,
    zipcode TEXT,
    state TEXT,
    bio TEXT,
    location TEXT,
    picture_url TEXT
);

CREATE TABLE IF NOT EXISTS followers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    followed_user_id INTEGER NOT NULL,
    username TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_followers_edge
    ON followers(user_id, followed_user_id, username);
CREATE INDEX IF NOT EXISTS idx_followers_followed ON followers(followed_user_id);
"""


class _ThreadConnection:
    """Owns one thread's connection and closes it when the thread goes away.

    Only the thread-local keeps a strong reference, so the finalizer runs
    once the thread exits and its locals are released.
    """

    __slots__ = ("conn", "_finalizer", "__weakref__")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._finalizer = weakref.finalize(self, conn.close)

    def close(self) -> None:
        self._finalizer()


@dataclass
class QueryResult:
    """Rows returned by a statement plus its affected-row count."""

    rows: list[sqlite3.Row] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: int | None = None

    def first(self) -> sqlite3.Row | None:
        return self.rows[0] if self.rows else None


class Database:
    """Thread-aware access to a single SQLite database file.

    Each thread lazily opens its own connection; SQLite serializes
    writers between them. ``timeout`` bounds how long a statement waits
    for a lock held by another connection.
    """

    def __init__(self, db_path: Path, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self._local = threading.local()
        self._connections: weakref.WeakSet[_ThreadConnection] = weakref.WeakSet()
        self._lock = threading.Lock()
        self._schema_ready = False

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def open_connections(self) -> int:
        """Number of connections held by live threads."""
        with self._lock:
            return len(self._connections)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the calling thread's connection."""
        holder: _ThreadConnection | None = getattr(self._local, "holder", None)
        if holder is not None:
            return holder.conn

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path, timeout=self._timeout, check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            logger.warning("Cannot open database %s: %s", self._db_path, e)
            raise StorageUnavailableError(f"Cannot open database {self._db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            with self._lock:
                if not self._schema_ready:
                    conn.executescript(_SCHEMA)
                    self._schema_ready = True
                holder = _ThreadConnection(conn)
                self._connections.add(holder)
        except sqlite3.Error as e:
            conn.close()
            logger.warning("Cannot initialize database %s: %s", self._db_path, e)
            raise StorageUnavailableError(f"Cannot initialize database {self._db_path}: {e}") from e

        self._local.holder = holder
        return conn

    def execute(self, query: str, params: Sequence[Any] = ()) -> QueryResult:
        """Run one parameterized statement and commit it.

        Integrity failures become ConstraintViolationError; every other
        driver error becomes StorageUnavailableError. Nothing is retried.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(query, tuple(params))
            rows = cursor.fetchall()
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ConstraintViolationError(str(e)) from e
        except sqlite3.Error as e:
            self._safe_rollback(conn)
            logger.warning("Query failed on %s: %s", self._db_path, e)
            raise StorageUnavailableError(str(e)) from e
        return QueryResult(rows=rows, rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run several statements as one write transaction.

        ``BEGIN IMMEDIATE`` takes the write lock up front, so reads made
        inside the block cannot be invalidated by another writer.
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            logger.warning("Cannot begin transaction on %s: %s", self._db_path, e)
            raise StorageUnavailableError(str(e)) from e

        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ConstraintViolationError(str(e)) from e
        except sqlite3.Error as e:
            self._safe_rollback(conn)
            logger.warning("Transaction failed on %s: %s", self._db_path, e)
            raise StorageUnavailableError(str(e)) from e
        except BaseException:
            self._safe_rollback(conn)
            raise

    @staticmethod
    def _safe_rollback(conn: sqlite3.Connection) -> None:
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.debug("Rollback failed", exc_info=True)

    def close(self) -> None:
        """Close every connection opened by this database."""
        with self._lock:
            for holder in list(self._connections):
                holder.close()
            self._connections.clear()
            self._schema_ready = False
        self._local = threading.local()

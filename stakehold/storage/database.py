"""SQLite store handle and unit of work.

One :class:`Database` is opened per process (or per thread) and passed
explicitly to every service function. Monetary columns are TEXT holding
``Decimal`` strings, so nothing in the store rounds through a float.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA busy_timeout = {busy_timeout_ms}",
)


class Database:
    """Ledger store backed by a single SQLite connection.

    The connection is opened lazily in autocommit mode. Writes that must
    land together go through :meth:`transaction`, which issues
    ``BEGIN IMMEDIATE``: the first writer holds the database lock until it
    commits, and a second writer waits up to ``busy_timeout_ms`` for it.
    Two recomputations of one position therefore never read the same
    stale transaction list.
    """

    def __init__(self, path: str | Path, busy_timeout_ms: int = 5000):
        if str(path) == MEMORY:
            self.path: str | Path = MEMORY
        else:
            self.path = Path(path).expanduser().resolve()
        self.busy_timeout_ms = int(busy_timeout_ms)
        self._conn: sqlite3.Connection | None = None

    @property
    def is_memory(self) -> bool:
        return self.path == MEMORY

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            if not self.is_memory:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), isolation_level=None)
            conn.row_factory = sqlite3.Row
            if not self.is_memory:
                conn.execute("PRAGMA journal_mode = WAL")
            for pragma in _PRAGMAS:
                conn.execute(pragma.format(busy_timeout_ms=self.busy_timeout_ms))
            self._conn = conn
            logger.debug("Opened ledger store %s", self.path)
        return self._conn

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("Closed ledger store %s", self.path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run a block as one atomic unit of work.

        The yielded cursor is the unit-of-work handle: pass it to anything
        that must commit or roll back with the caller's writes. Any
        exception escaping the block rolls everything back and re-raises.
        """
        conn = self.connect()
        if conn.in_transaction:
            raise RuntimeError("Nested unit of work is not supported")
        cur = conn.cursor()
        cur.execute("BEGIN IMMEDIATE")
        try:
            yield cur
        except Exception:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            cur.close()

    # Read helpers mirror the cursor API so query functions accept either.

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self.connect().execute(sql, params)

    def executescript(self, sql: str) -> None:
        self.connect().executescript(sql)

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        return self.connect().execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        return self.connect().execute(sql, params).fetchall()

    def schema_version(self) -> int:
        """Highest applied migration, or 0 on a fresh file."""
        try:
            row = self.fetchone("SELECT MAX(version) AS v FROM _schema_version")
        except sqlite3.OperationalError:
            return 0
        return int(row["v"]) if row is not None and row["v"] is not None else 0

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database({self.path!s})"

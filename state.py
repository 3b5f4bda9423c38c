"""Persistence for the last committed content digest.

The relay keeps exactly one piece of durable state: the digest of the last
feed revision that was fully delivered. Stores implement a two-method
contract so the pipeline can be given any scalar slot:

    get() -> str | None
    set(digest) -> None

Implementations:
    MemoryDigestStore: In-process slot (tests, one-shot runs)
    SqliteDigestStore: SQLite file with a single key/value row

Database Schema (SqliteDigestStore):
    state table:
        - key (TEXT, PK): Slot name ('last_digest')
        - value (TEXT): Stored digest
        - updated_at (INTEGER): Last write (Unix epoch)

Callers are expected to serialize pipeline runs; the stores do no locking
beyond what SQLite itself provides.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

LAST_DIGEST_KEY = "last_digest"


class DigestStore(Protocol):
    """Scalar slot holding the last committed digest."""

    def get(self) -> str | None: ...

    def set(self, digest: str) -> None: ...


class MemoryDigestStore:
    """Digest slot kept in memory."""

    def __init__(self, initial: str | None = None):
        self._value = initial

    def get(self) -> str | None:
        return self._value

    def set(self, digest: str) -> None:
        self._value = digest

    def clear(self) -> None:
        self._value = None


class SqliteDigestStore:
    """Digest slot persisted in a SQLite file.

    Example:
        >>> with SqliteDigestStore("state.db") as store:
        ...     store.set(snapshot.digest)
        ...     store.get()
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS state (
        key TEXT PRIMARY KEY,            -- slot name
        value TEXT NOT NULL,             -- stored digest
        updated_at INTEGER NOT NULL      -- last write (Unix epoch)
    );
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str, key: str = LAST_DIGEST_KEY):
        """Open (or create) the state database.

        Args:
            path: Path to SQLite database file
            key: Slot name within the state table
        """
        self.path = Path(path)
        self.key = key
        if self.path.parent != Path("."):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.path))
        self.conn.row_factory = sqlite3.Row

        # WAL mode allows concurrent readers during writes
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("State store initialized | path=%s", self.path)

    def get(self) -> str | None:
        cursor = self.conn.execute("SELECT value FROM state WHERE key = ?", (self.key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, digest: str) -> None:
        self.conn.execute(
            """
            INSERT INTO state (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (self.key, digest, int(time.time())),
        )
        self.conn.commit()
        logger.debug("Digest committed | digest=%s", digest[:12])

    def clear(self) -> None:
        self.conn.execute("DELETE FROM state WHERE key = ?", (self.key,))
        self.conn.commit()

    def info(self) -> dict[str, Any] | None:
        """Return the stored digest with its update time, or None if empty."""
        cursor = self.conn.execute(
            "SELECT value, updated_at FROM state WHERE key = ?", (self.key,)
        )
        row = cursor.fetchone()
        if not row:
            return None
        return {"digest": row["value"], "updated_at": row["updated_at"]}

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> "SqliteDigestStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

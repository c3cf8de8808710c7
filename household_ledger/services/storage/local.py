"""SQLite-backed durable key-value store for offline logs and mirror snapshots."""

import sqlite3
from pathlib import Path
from typing import Optional

from household_ledger.services.storage.interface import (
    KeyValueStoreInterface,
    PersistenceError,
)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SQLiteKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store persisted to a single SQLite file.

    Every `set`/`remove` commits before returning, so a queued mutation
    survives a process restart. Any failure, including use after
    `close()`, surfaces as PersistenceError.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        try:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute(SCHEMA_SQL)
            self.conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open offline store at {self.db_path}: {e}")

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise PersistenceError(f"Offline store at {self.db_path} is closed")
        return self.conn

    def get(self, key: str) -> Optional[str]:
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read {key}: {e}")
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connection()
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to persist {key}: {e}")

    def remove(self, key: str) -> None:
        conn = self._connection()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to remove {key}: {e}")

    def keys(self) -> list[str]:
        conn = self._connection()
        try:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list keys: {e}")
        return [row[0] for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

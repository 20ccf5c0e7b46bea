"""
SQLite key/value storage for client-local data such as dice favorites.
"""

import sqlite3
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import Generator

from tabletop.config import settings


class Database:
    """
    Thread-safe SQLite key/value store.

    Each thread gets its own connection to the same file.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = str(db_path or settings.FAVORITES_DB_PATH)
        self._local = threading.local()
        self._ensure_directory()
        with self.get_connection() as conn:
            conn.executescript(SCHEMA_SQL)

    def _ensure_directory(self) -> None:
        """Create database directory if it doesn't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a thread-local database connection.

        Usage:
            with db.get_connection() as conn:
                cursor = conn.execute("SELECT ...")
        """
        if getattr(self._local, "connection", None) is None:
            self._local.connection = self._create_connection()

        conn = self._local.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )
        conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row
        return conn

    def close_connection(self) -> None:
        """Close the current thread's connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteFavoriteStorage:
    """FavoriteStorage backed by the kv_store table."""

    def __init__(self, database: Database | None = None):
        self.db = database or Database()

    def get(self, key: str) -> str | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,)
            ).fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value)
            )

    def delete(self, key: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

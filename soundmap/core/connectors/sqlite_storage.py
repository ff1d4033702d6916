"""
SQLiteStorage - SQLite-based storage implementation.

Key/value table in a single database file. A fresh connection per call keeps
the object safe to use from executor threads.
"""

import sqlite3
import time
from pathlib import Path
from typing import Optional

from soundmap.common.logging import get_logger
from soundmap.core.errors import CacheError, CacheWriteError, StorageQuotaExceededError

logger = get_logger(__name__)


class SQLiteStorage:
    """
    SQLite-based storage implementation.

    Implements StorageProtocol.
    """

    def __init__(self, db_path: str = "cache/analysis.db", quota_bytes: Optional[int] = None):
        """
        Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database
            quota_bytes: Maximum size of a single value (None = unlimited)
        """
        self.db_path = Path(db_path).expanduser()
        self.quota_bytes = quota_bytes
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self):
        conn = self._connect()
        try:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL
                )
            ''')
            conn.commit()
        finally:
            conn.close()

    def get_item(self, key: str) -> Optional[str]:
        """Get value by key."""
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise CacheError(
                "Failed to read cache record",
                data={"key": key, "db_path": str(self.db_path)},
                cause=e,
            )
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Insert or replace value."""
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceededError(
                "Storage quota exceeded",
                data={"key": key, "size_bytes": size, "quota_bytes": self.quota_bytes},
            )

        try:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            if "full" in str(e).lower():
                raise StorageQuotaExceededError(
                    "SQLite database is full",
                    data={"key": key, "db_path": str(self.db_path)},
                    cause=e,
                )
            raise CacheWriteError(
                "Failed to write cache record",
                data={"key": key, "db_path": str(self.db_path)},
                cause=e,
            )
        logger.debug("Cache record written", data={"key": key, "size_bytes": size})

    def remove_item(self, key: str) -> None:
        """Delete key."""
        try:
            conn = self._connect()
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise CacheWriteError(
                "Failed to remove cache record",
                data={"key": key, "db_path": str(self.db_path)},
                cause=e,
            )

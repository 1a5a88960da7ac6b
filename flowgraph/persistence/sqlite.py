"""SQLite implementation of history storage."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional

from .storage import HistoryStorage, StorageError, StorageQuotaExceeded


class SQLiteHistoryStorage(HistoryStorage):
    """Persist serialized history in a single-table SQLite database."""

    def __init__(self, db_path: str | Path, max_bytes: Optional[int] = None):
        self.db_path = str(db_path)
        self.max_bytes = max_bytes
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        try:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _fetchone(self, query: str, *params: Any) -> tuple | None:
        try:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Storage API
    def load(self, key: str) -> Optional[str]:
        row = self._fetchone("SELECT value FROM kv_store WHERE key = ?", key)
        return row[0] if row else None

    def save(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise StorageQuotaExceeded(
                f"Value for {key!r} is {size} bytes, quota is {self.max_bytes}"
            )
        self._execute(
            "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
            key,
            value,
        )

    def delete(self, key: str) -> None:
        self._execute("DELETE FROM kv_store WHERE key = ?", key)

    def close(self) -> None:
        self._conn.close()

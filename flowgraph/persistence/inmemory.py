"""In-memory implementation of history storage."""

from __future__ import annotations

from typing import Dict, Optional

from .storage import HistoryStorage, StorageQuotaExceeded


class InMemoryHistoryStorage(HistoryStorage):
    """Store serialized history in local memory.

    Useful for tests or when no durable store is configured. Data is not
    persisted across process restarts. ``max_bytes`` emulates a browser-style
    storage quota.
    """

    def __init__(self, max_bytes: Optional[int] = None) -> None:
        self._data: Dict[str, str] = {}
        self.max_bytes = max_bytes

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise StorageQuotaExceeded(
                f"Value for {key!r} is {size} bytes, quota is {self.max_bytes}"
            )
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

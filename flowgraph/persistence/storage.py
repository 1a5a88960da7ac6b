"""Key-value storage abstraction for persisted execution history."""

from __future__ import annotations

from typing import Optional, Protocol


class StorageError(Exception):
    """A durable storage backend rejected a read or write."""


class StorageQuotaExceeded(StorageError):
    """The value does not fit within the backend's size quota."""


class HistoryStorage(Protocol):
    """Protocol for durable key-value backends holding serialized history."""

    def load(self, key: str) -> Optional[str]:
        """Return the stored value for ``key`` or ``None`` when absent."""

    def save(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

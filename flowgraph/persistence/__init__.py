"""Persistence layer for flowgraph execution history."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FlowgraphConfig, load_config
from .inmemory import InMemoryHistoryStorage
from .sqlite import SQLiteHistoryStorage
from .storage import HistoryStorage, StorageError, StorageQuotaExceeded


def get_storage(
    url: Optional[str] = None, config: Optional[FlowgraphConfig] = None
) -> HistoryStorage:
    """Factory function to obtain a history storage backend.

    The backend is selected from ``url``, which can be provided explicitly,
    via environment variable ``FLOWGRAPH_HISTORY_URL``, or from loaded
    configuration. When nothing is configured, an in-memory backend is
    returned.
    """

    if url is None:
        config = config or load_config()
        url = os.getenv("FLOWGRAPH_HISTORY_URL") or config.history.url

    if not url or url.startswith("memory://"):
        return InMemoryHistoryStorage()
    if url.startswith("sqlite://"):
        path = url.replace("sqlite://", "", 1)
        return SQLiteHistoryStorage(path)
    raise ValueError(f"Unsupported history backend: {url}")


__all__ = [
    "HistoryStorage",
    "InMemoryHistoryStorage",
    "SQLiteHistoryStorage",
    "StorageError",
    "StorageQuotaExceeded",
    "get_storage",
]

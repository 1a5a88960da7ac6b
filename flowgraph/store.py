"""Execution trace store.

Two tiers with different write rates and durability:

* **live** - the currently running execution per flow, overwritten on every
  step change and never persisted;
* **history** - a capped, per-flow archive of terminal executions, written
  to a :class:`~flowgraph.persistence.HistoryStorage` on every archival.

Listeners registered with :meth:`ExecutionStore.subscribe` are called
synchronously once a change is fully applied.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from .config import FlowgraphConfig, load_config
from .constants import (
    DEFAULT_HISTORY_FALLBACK_LIMIT,
    DEFAULT_HISTORY_KEY,
    DEFAULT_HISTORY_LIMIT,
)
from .contracts import FlowExecution
from .persistence import HistoryStorage, InMemoryHistoryStorage, StorageError, get_storage

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
HistorySnapshot = Tuple[FlowExecution, ...]

_history_adapter: TypeAdapter[Dict[str, List[FlowExecution]]] = TypeAdapter(
    Dict[str, List[FlowExecution]]
)


def _keep_newest(history: List[FlowExecution], limit: int) -> List[FlowExecution]:
    return history[-limit:] if limit > 0 else []


class ExecutionStore:
    """Live and historical execution traces keyed by flow id."""

    def __init__(
        self,
        storage: Optional[HistoryStorage] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        fallback_limit: int = DEFAULT_HISTORY_FALLBACK_LIMIT,
        key: str = DEFAULT_HISTORY_KEY,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._storage = storage if storage is not None else InMemoryHistoryStorage()
        self.history_limit = history_limit
        self.fallback_limit = min(fallback_limit, history_limit)
        self.key = key
        self._live: Dict[str, FlowExecution] = {}
        self._listeners: List[Listener] = []
        self._snapshots: Dict[str, HistorySnapshot] = {}
        self._history: Dict[str, List[FlowExecution]] = self._load_history()

    @classmethod
    def from_config(cls, config: Optional[FlowgraphConfig] = None) -> "ExecutionStore":
        config = config or load_config()
        return cls(
            storage=get_storage(config=config),
            history_limit=config.history.limit,
            fallback_limit=config.history.fallback_limit,
            key=config.history.key,
        )

    # ------------------------------------------------------------------
    # Persistence
    def _load_history(self) -> Dict[str, List[FlowExecution]]:
        try:
            raw = self._storage.load(self.key)
        except StorageError as exc:
            logger.warning(f"Could not read execution history: {exc}")
            return {}
        if not raw:
            return {}
        try:
            data = _history_adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                f"Discarding unreadable execution history ({exc.error_count()} error(s))"
            )
            return {}
        return {
            flow_id: _keep_newest(history, self.history_limit)
            for flow_id, history in data.items()
            if history
        }

    def _write(self) -> None:
        if not self._history:
            self._storage.delete(self.key)
            return
        payload = _history_adapter.dump_json(self._history, by_alias=True).decode("utf-8")
        self._storage.save(self.key, payload)

    def _persist(self) -> None:
        try:
            self._write()
            return
        except StorageError as exc:
            logger.warning(
                f"Persisting execution history failed ({exc}); "
                f"trimming to {self.fallback_limit} per flow and retrying"
            )
        trimmed: Dict[str, List[FlowExecution]] = {}
        for flow_id, history in self._history.items():
            kept = _keep_newest(history, self.fallback_limit)
            if kept:
                trimmed[flow_id] = kept
        self._history = trimmed
        self._snapshots.clear()
        try:
            self._write()
        except StorageError as exc:
            logger.warning(f"Dropping execution history write: {exc}")

    # ------------------------------------------------------------------
    # Notifications
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Execution store listener failed")

    # ------------------------------------------------------------------
    # Store API
    def set_execution(self, flow_id: str, execution: FlowExecution) -> None:
        """Record ``execution`` as the live run of ``flow_id``.

        Terminal executions are also upserted into the flow's history by
        execution id and persisted. The archived entry is a copy, so later
        changes to ``execution`` do not reach history.
        """
        self._live[flow_id] = execution
        if execution.is_terminal:
            archived = execution.model_copy(deep=True)
            history = list(self._history.get(flow_id, []))
            index = next((i for i, e in enumerate(history) if e.id == archived.id), None)
            if index is None:
                history.append(archived)
            else:
                history[index] = archived
            self._history[flow_id] = _keep_newest(history, self.history_limit)
            self._snapshots.pop(flow_id, None)
            self._persist()
        self._notify()

    def get_execution(self, flow_id: str) -> Optional[FlowExecution]:
        return self._live.get(flow_id)

    def get_all_executions(self) -> List[FlowExecution]:
        return list(self._live.values())

    def get_execution_history(self, flow_id: str) -> HistorySnapshot:
        """Terminal executions of ``flow_id``, newest first.

        The same tuple is returned until the flow's history changes, so
        callers can compare snapshots by identity.
        """
        snapshot = self._snapshots.get(flow_id)
        if snapshot is None:
            snapshot = tuple(reversed(self._history.get(flow_id, [])))
            self._snapshots[flow_id] = snapshot
        return snapshot

    def get_historical_execution(
        self, flow_id: str, execution_id: str
    ) -> Optional[FlowExecution]:
        return next(
            (e for e in self._history.get(flow_id, []) if e.id == execution_id), None
        )

    def clear_history(self, flow_id: Optional[str] = None) -> None:
        """Drop the history of ``flow_id``, or of every flow when omitted."""
        if flow_id is None:
            self._history.clear()
            self._snapshots.clear()
        else:
            self._history.pop(flow_id, None)
            self._snapshots.pop(flow_id, None)
        self._persist()
        self._notify()

    def clear_live_execution(self, flow_id: str) -> None:
        if self._live.pop(flow_id, None) is not None:
            self._notify()


_default_store: ExecutionStore | None = None


def get_execution_store(config: Optional[FlowgraphConfig] = None) -> ExecutionStore:
    """Return the process-wide default store, building it from configuration."""
    global _default_store
    if _default_store is None or config is not None:
        _default_store = ExecutionStore.from_config(config)
    return _default_store


def set_execution_store(store: Optional[ExecutionStore]) -> None:
    """Replace the process-wide default store (``None`` resets it)."""
    global _default_store
    _default_store = store

"""Execution tracking for running flows.

Wraps step work and records a full trace (timing, I/O, errors, token usage)
into an :class:`~flowgraph.store.ExecutionStore` after every change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar, Union

from .contracts import (
    FlowExecution,
    StepExecution,
    StepStatus,
    TokenUsage,
    new_execution,
    now_ms,
)
from .store import ExecutionStore, get_execution_store

logger = logging.getLogger(__name__)

T = TypeVar("T")
UsageLike = Union[TokenUsage, Mapping[str, int]]


@dataclass
class TrackStepResult(Generic[T]):
    data: T
    duration_ms: int


def _as_usage(usage: Optional[UsageLike]) -> Optional[TokenUsage]:
    if usage is None or isinstance(usage, TokenUsage):
        return usage
    return TokenUsage.model_validate(usage)


class FlowExecutionTracker:
    """Records one run of ``flow_id`` step by step.

    Every update replaces :attr:`execution` with a new value and writes it to
    the store, so readers never observe a half-applied change.
    """

    def __init__(self, flow_id: str, store: Optional[ExecutionStore] = None) -> None:
        self.flow_id = flow_id
        self._store = store if store is not None else get_execution_store()
        self.execution: FlowExecution = new_execution(flow_id)
        self._publish()

    def _publish(self) -> None:
        self._store.set_execution(self.flow_id, self.execution)

    def _update_step(self, step_id: str, **updates: Any) -> StepExecution:
        current = self.execution.steps.get(step_id) or StepExecution(step_id=step_id)
        updated = current.model_copy(update=updates)
        steps = {**self.execution.steps, step_id: updated}
        self.execution = self.execution.model_copy(update={"steps": steps})
        self._publish()
        return updated

    # ------------------------------------------------------------------
    # Step lifecycle
    def _begin(self, step_id: str, input: Any) -> int:
        started_at = now_ms()
        logger.debug(f"Step {step_id} started for flow {self.flow_id}")
        self._update_step(
            step_id,
            status="running",
            started_at=started_at,
            completed_at=None,
            duration_ms=None,
            input=input,
            error=None,
        )
        return started_at

    def _succeed(
        self,
        step_id: str,
        started_at: int,
        data: Any,
        raw: Optional[str],
        usage: Optional[UsageLike],
    ) -> int:
        completed_at = now_ms()
        duration_ms = completed_at - started_at
        self._update_step(
            step_id,
            status="success",
            completed_at=completed_at,
            duration_ms=duration_ms,
            output=data,
            raw_response=raw,
            usage=_as_usage(usage),
        )
        logger.debug(f"Step {step_id} succeeded for flow {self.flow_id} in {duration_ms}ms")
        return duration_ms

    def _error(self, step_id: str, started_at: int, exc: BaseException) -> None:
        completed_at = now_ms()
        self._update_step(
            step_id,
            status="error",
            completed_at=completed_at,
            duration_ms=completed_at - started_at,
            error=str(exc),
        )
        logger.debug(f"Step {step_id} failed for flow {self.flow_id}: {exc}")

    def track_step(
        self,
        step_id: str,
        input: Any,
        fn: Callable[[], T],
        raw: Optional[str] = None,
        usage: Optional[UsageLike] = None,
    ) -> TrackStepResult[T]:
        """Run ``fn`` as step ``step_id`` and record its outcome.

        Exceptions raised by ``fn`` are recorded on the step and re-raised.
        """
        started_at = self._begin(step_id, input)
        try:
            data = fn()
        except Exception as exc:
            self._error(step_id, started_at, exc)
            raise
        duration_ms = self._succeed(step_id, started_at, data, raw, usage)
        return TrackStepResult(data=data, duration_ms=duration_ms)

    async def atrack_step(
        self,
        step_id: str,
        input: Any,
        fn: Callable[[], Awaitable[T]],
        raw: Optional[str] = None,
        usage: Optional[UsageLike] = None,
    ) -> TrackStepResult[T]:
        """Async variant of :meth:`track_step` awaiting ``fn()``."""
        started_at = self._begin(step_id, input)
        try:
            data = await fn()
        except Exception as exc:
            self._error(step_id, started_at, exc)
            raise
        duration_ms = self._succeed(step_id, started_at, data, raw, usage)
        return TrackStepResult(data=data, duration_ms=duration_ms)

    def record_usage(
        self, step_id: str, usage: UsageLike, raw: Optional[str] = None
    ) -> None:
        """Attach token usage (and optionally the raw response) after the fact."""
        updates: dict[str, Any] = {"usage": _as_usage(usage)}
        if raw is not None:
            updates["raw_response"] = raw
        self._update_step(step_id, **updates)

    def resolve_user_input(self, step_id: str, value: Any) -> None:
        """Mark a user-input step as resolved with ``value``."""
        now = now_ms()
        self._update_step(
            step_id,
            status="success",
            started_at=now,
            completed_at=now,
            duration_ms=0,
            output=value,
        )

    def skip_step(self, step_id: str) -> None:
        self._update_step(step_id, status="skipped")

    def get_step_output(self, step_id: str) -> Any:
        step = self.execution.steps.get(step_id)
        return step.output if step else None

    def get_step_status(self, step_id: str) -> StepStatus:
        step = self.execution.steps.get(step_id)
        return step.status if step else "idle"

    # ------------------------------------------------------------------
    # Run lifecycle
    def complete(self) -> FlowExecution:
        """Mark the run completed; the store archives it."""
        self.execution = self.execution.model_copy(
            update={"status": "completed", "completed_at": now_ms()}
        )
        self._publish()
        logger.info(f"Flow {self.flow_id} run {self.execution.id} completed")
        return self.execution

    def fail(self, error: Optional[str] = None) -> FlowExecution:
        """Mark the run failed; steps still running are marked as errors."""
        steps = {
            step_id: (
                step.model_copy(update={"status": "error", "error": error or step.error})
                if step.status == "running"
                else step
            )
            for step_id, step in self.execution.steps.items()
        }
        self.execution = self.execution.model_copy(
            update={"status": "failed", "completed_at": now_ms(), "steps": steps}
        )
        self._publish()
        logger.info(f"Flow {self.flow_id} run {self.execution.id} failed")
        return self.execution

    def reset(self) -> FlowExecution:
        """Start a fresh run of the same flow."""
        self.execution = new_execution(self.flow_id)
        self._publish()
        return self.execution

    def close(self) -> None:
        """Drop the live entry for this flow from the store."""
        self._store.clear_live_execution(self.flow_id)

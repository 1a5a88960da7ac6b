"""Structural invariant validation for flow definitions.

Invariants checked for every flow:

* ``I1`` - the ``depends_on`` relation is acyclic.
* ``I2`` - at least one step has no dependencies.
* ``I3`` - every step is reachable from a root and every dependency exists.
* ``I4`` - step ids are unique within the flow.
* ``I5`` - steps carry a non-empty id, name and description.

Step-kind contracts are reported under ``"<kind>-contract"``. Violations are
returned as records and never raised.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from .contracts import FlowDefinition, FlowStep

logger = logging.getLogger(__name__)

InvalidFlowCallback = Callable[[FlowDefinition, List["FlowValidationError"]], None]


class FlowValidationError(BaseModel):
    """A single invariant violation found in a flow."""

    flow_id: str
    invariant: str
    step_id: Optional[str] = None
    message: str


def format_error(error: FlowValidationError) -> str:
    """Render ``error`` as a one-line diagnostic."""
    location = f' step="{error.step_id}"' if error.step_id else ""
    return f"[{error.invariant}]{location}: {error.message}"


def _find_cycles(order: List[str], deps: Dict[str, List[str]]) -> List[List[str]]:
    """Depth-first search over ``deps`` keeping the current path on a stack."""
    cycles: List[List[str]] = []
    seen: set[frozenset[str]] = set()
    done: set[str] = set()

    for start in order:
        if start in done:
            continue
        path = [start]
        on_path = {start}
        stack = [(start, iter(deps.get(start, ())))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.pop()
                on_path.discard(node)
                done.add(node)
                continue
            if child not in deps:
                continue
            if child in on_path:
                cycle = path[path.index(child) :] + [child]
                key = frozenset(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
            elif child not in done:
                path.append(child)
                on_path.add(child)
                stack.append((child, iter(deps.get(child, ()))))
    return cycles


def _check_kind_contract(step: FlowStep) -> List[tuple[str, str]]:
    problems: List[tuple[str, str]] = []
    if step.kind == "llm":
        if not step.prompt or not step.prompt.strip():
            problems.append(("llm-contract", f'LLM step "{step.id}" must have a prompt'))
        if not step.output_schema:
            problems.append(
                ("llm-contract", f'LLM step "{step.id}" must have a non-empty outputSchema')
            )
    elif step.kind in ("user-input", "transform", "validate"):
        label = {"user-input": "User-input", "transform": "Transform", "validate": "Validate"}[
            step.kind
        ]
        invariant = f"{step.kind}-contract"
        if not step.input_schema:
            problems.append((invariant, f'{label} step "{step.id}" must have inputSchema'))
        if not step.output_schema:
            problems.append((invariant, f'{label} step "{step.id}" must have outputSchema'))
    # display, chat and external-input steps have no hard schema requirements
    return problems


def validate_flow(flow: FlowDefinition) -> List[FlowValidationError]:
    """Validate ``flow`` against all structural invariants.

    Returns an empty list when the flow is safe to execute, render and mutate.
    """
    errors: List[FlowValidationError] = []

    def report(invariant: str, message: str, step_id: Optional[str] = None) -> None:
        errors.append(
            FlowValidationError(
                flow_id=flow.id, invariant=invariant, step_id=step_id, message=message
            )
        )

    counts = Counter(step.id for step in flow.steps)
    for step_id, count in counts.items():
        if count > 1:
            report("I4", f'Duplicate step ID "{step_id}" ({count} occurrences)', step_id)

    for step in flow.steps:
        if not step.id.strip():
            report("I5", "Step has empty id")
        if not step.name.strip():
            report("I5", f'Step "{step.id}" has empty name', step.id)
        if not step.description.strip():
            report("I5", f'Step "{step.id}" has empty description', step.id)

    order: List[str] = []
    deps: Dict[str, List[str]] = {}
    for step in flow.steps:
        if step.id not in deps:
            order.append(step.id)
            deps[step.id] = []
        deps[step.id].extend(step.depends_on)

    dependents: Dict[str, List[str]] = {step_id: [] for step_id in order}
    for step in flow.steps:
        for dep in step.depends_on:
            if dep not in deps:
                report("I3", f'Step "{step.id}" depends on "{dep}" which does not exist', step.id)
            else:
                dependents[dep].append(step.id)

    roots = [step.id for step in flow.steps if not step.depends_on]
    if not roots:
        report("I2", "Flow has no root steps (steps with empty dependsOn)")

    for cycle in _find_cycles(order, deps):
        report("I1", f"Flow contains a cycle: {' -> '.join(cycle)}", cycle[0])

    reachable: set[str] = set()
    queue = deque(roots)
    while queue:
        node = queue.popleft()
        if node in reachable:
            continue
        reachable.add(node)
        queue.extend(n for n in dependents.get(node, ()) if n not in reachable)
    for step_id in order:
        if step_id not in reachable:
            report("I3", f'Step "{step_id}" is an orphan - not reachable from any root', step_id)

    for step in flow.steps:
        for invariant, message in _check_kind_contract(step):
            report(invariant, message, step.id)

    return errors


def validate_registry(
    flows: Iterable[FlowDefinition], on_invalid: Optional[InvalidFlowCallback] = None
) -> List[FlowDefinition]:
    """Return only the flows that pass :func:`validate_flow`.

    Invalid flows are excluded rather than raised so that one malformed
    definition cannot take the whole catalog down. Each rejection is logged
    and handed to ``on_invalid`` when given.
    """
    valid: List[FlowDefinition] = []
    for flow in flows:
        errors = validate_flow(flow)
        if not errors:
            valid.append(flow)
            continue
        plural = "" if len(errors) == 1 else "s"
        logger.error(f'Flow "{flow.id}" failed validation ({len(errors)} error{plural})')
        for error in errors:
            logger.error(f"  {format_error(error)}")
        if on_invalid is not None:
            on_invalid(flow, errors)
    return valid

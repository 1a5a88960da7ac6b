"""Pure transformations of flow definitions.

Every mutation takes a :class:`FlowDefinition` and returns a new one inside a
:class:`MutationResult`; the input flow is never modified. Results are
re-validated against the same invariants the registry enforces.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .contracts import CamelModel, FlowDefinition, FlowStep, SchemaField, StepKind, now_ms
from .validation import FlowValidationError, validate_flow

logger = logging.getLogger(__name__)


class AddStep(CamelModel):
    type: Literal["add-step"] = "add-step"
    step: FlowStep
    after_step_id: Optional[str] = None


class RemoveStep(CamelModel):
    type: Literal["remove-step"] = "remove-step"
    step_id: str


class UpdateStep(CamelModel):
    type: Literal["update-step"] = "update-step"
    step_id: str
    changes: Dict[str, Any] = Field(default_factory=dict)


class Connect(CamelModel):
    type: Literal["connect"] = "connect"
    from_id: str
    to_id: str


class Disconnect(CamelModel):
    type: Literal["disconnect"] = "disconnect"
    from_id: str
    to_id: str


class ChangeKind(CamelModel):
    type: Literal["change-kind"] = "change-kind"
    step_id: str
    new_kind: StepKind


class ReorderDeps(CamelModel):
    type: Literal["reorder-deps"] = "reorder-deps"
    step_id: str
    new_deps: List[str]


class Batch(CamelModel):
    """Sequence of mutations applied as one edit.

    Only the final flow is validated, so a batch may pass through invalid
    intermediate shapes (e.g. add a step before connecting it) as long as it
    ends valid.
    """

    type: Literal["batch"] = "batch"
    mutations: List["Mutation"] = Field(default_factory=list)
    description: str = "Batch edit"


Mutation = Annotated[
    Union[AddStep, RemoveStep, UpdateStep, Connect, Disconnect, ChangeKind, ReorderDeps, Batch],
    Field(discriminator="type"),
]
Batch.model_rebuild()

_mutation_adapter: TypeAdapter[Mutation] = TypeAdapter(Mutation)


def parse_mutation(data: Any) -> Mutation:
    """Build a mutation from a plain mapping such as ``{"type": "connect", ...}``.

    Raises:
        pydantic.ValidationError: If ``data`` is not a recognised mutation.
    """
    return _mutation_adapter.validate_python(data)


class MutationResult(BaseModel):
    """Outcome of :func:`apply_mutation`."""

    flow: FlowDefinition
    valid: bool
    errors: List[FlowValidationError] = Field(default_factory=list)
    description: str


class _Rejected(Exception):
    """Misuse of a mutation; the original flow is returned untouched."""

    def __init__(self, message: str, description: str) -> None:
        super().__init__(message)
        self.message = message
        self.description = description


class _Unchanged(Exception):
    """The mutation is already satisfied by the flow."""

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description


def _require(flow: FlowDefinition, step_id: str, action: str) -> FlowStep:
    step = flow.get_step(step_id)
    if step is None:
        raise _Rejected(f'Step "{step_id}" not found', f'Cannot {action} - "{step_id}" not found')
    return step


def _replace_step(
    flow: FlowDefinition, step_id: str, change: Callable[[FlowStep], FlowStep]
) -> FlowDefinition:
    steps = [change(s) if s.id == step_id else s for s in flow.steps]
    return flow.model_copy(update={"steps": steps})


def _add_step(flow: FlowDefinition, mutation: AddStep) -> Tuple[FlowDefinition, str]:
    step = mutation.step
    if flow.get_step(step.id) is not None:
        raise _Rejected(
            f'Step "{step.id}" already exists', f'Cannot add "{step.id}" - id already in use'
        )
    after = mutation.after_step_id
    if after and after not in step.depends_on:
        step = step.model_copy(update={"depends_on": [*step.depends_on, after]})
    flow = flow.model_copy(update={"steps": [*flow.steps, step]})
    return flow, f'Added step "{step.name}" ({step.kind})'


def _remove_step(flow: FlowDefinition, mutation: RemoveStep) -> Tuple[FlowDefinition, str]:
    removing = _require(flow, mutation.step_id, "remove")
    steps = [
        s
        if mutation.step_id not in s.depends_on
        else s.model_copy(
            update={"depends_on": [d for d in s.depends_on if d != mutation.step_id]}
        )
        for s in flow.steps
        if s.id != mutation.step_id
    ]
    return flow.model_copy(update={"steps": steps}), f'Removed step "{removing.name}"'


_STEP_KEYS = frozenset(
    [*FlowStep.model_fields, *(f.alias for f in FlowStep.model_fields.values() if f.alias), "type"]
)


def _update_step(flow: FlowDefinition, mutation: UpdateStep) -> Tuple[FlowDefinition, str]:
    existing = _require(flow, mutation.step_id, "update")
    unknown = [key for key in mutation.changes if key not in _STEP_KEYS]
    if unknown:
        raise _Rejected(
            f'Unknown step field(s) for "{mutation.step_id}": {", ".join(unknown)}',
            f'Cannot update "{mutation.step_id}" - unknown fields',
        )
    data = existing.model_dump(by_alias=True)
    for key, value in mutation.changes.items():
        if key == "type":
            key = "kind"
        field = FlowStep.model_fields.get(key)
        data[field.alias if field is not None and field.alias else key] = value
    data["id"] = mutation.step_id
    try:
        updated = FlowStep.model_validate(data)
    except ValidationError as exc:
        raise _Rejected(
            f'Invalid changes for step "{mutation.step_id}": {exc.error_count()} field error(s)',
            f'Cannot update "{mutation.step_id}" - invalid changes',
        ) from exc
    flow = _replace_step(flow, mutation.step_id, lambda _: updated)
    changed = ", ".join(mutation.changes)
    return flow, f'Updated "{existing.name}" ({changed})'


def _connect(flow: FlowDefinition, mutation: Connect) -> Tuple[FlowDefinition, str]:
    to = _require(flow, mutation.to_id, "connect")
    source = _require(flow, mutation.from_id, "connect")
    if mutation.from_id in to.depends_on:
        raise _Unchanged(f"Already connected: {mutation.from_id} -> {mutation.to_id}")
    flow = _replace_step(
        flow,
        mutation.to_id,
        lambda s: s.model_copy(update={"depends_on": [*s.depends_on, mutation.from_id]}),
    )
    return flow, f'Connected "{source.name}" -> "{to.name}"'


def _disconnect(flow: FlowDefinition, mutation: Disconnect) -> Tuple[FlowDefinition, str]:
    to = _require(flow, mutation.to_id, "disconnect")
    source = _require(flow, mutation.from_id, "disconnect")
    if mutation.from_id not in to.depends_on:
        raise _Unchanged(f"Not connected: {mutation.from_id} -> {mutation.to_id}")
    flow = _replace_step(
        flow,
        mutation.to_id,
        lambda s: s.model_copy(
            update={"depends_on": [d for d in s.depends_on if d != mutation.from_id]}
        ),
    )
    return flow, f'Disconnected "{source.name}" -> "{to.name}"'


def _change_kind(flow: FlowDefinition, mutation: ChangeKind) -> Tuple[FlowDefinition, str]:
    existing = _require(flow, mutation.step_id, "change kind")
    flow = _replace_step(
        flow, mutation.step_id, lambda s: s.model_copy(update={"kind": mutation.new_kind})
    )
    return flow, f'Changed "{existing.name}" from {existing.kind} to {mutation.new_kind}'


def _reorder_deps(flow: FlowDefinition, mutation: ReorderDeps) -> Tuple[FlowDefinition, str]:
    _require(flow, mutation.step_id, "reorder dependencies")
    new_deps = list(mutation.new_deps)
    flow = _replace_step(flow, mutation.step_id, lambda s: s.model_copy(update={"depends_on": new_deps}))
    return flow, f'Reordered dependencies for "{mutation.step_id}"'


_HANDLERS: Dict[type, Callable[[FlowDefinition, Any], Tuple[FlowDefinition, str]]] = {
    AddStep: _add_step,
    RemoveStep: _remove_step,
    UpdateStep: _update_step,
    Connect: _connect,
    Disconnect: _disconnect,
    ChangeKind: _change_kind,
    ReorderDeps: _reorder_deps,
}


def _misuse(flow: FlowDefinition, message: str, description: str) -> MutationResult:
    error = FlowValidationError(flow_id=flow.id, invariant="mutation", message=message)
    return MutationResult(flow=flow, valid=False, errors=[error], description=description)


def _apply(flow: FlowDefinition, mutation: Any, validate: bool) -> MutationResult:
    if isinstance(mutation, Batch):
        current = flow
        for sub in mutation.mutations:
            current = _apply(current, sub, validate=False).flow
        errors = validate_flow(current) if validate else []
        return MutationResult(
            flow=current, valid=not errors, errors=errors, description=mutation.description
        )

    handler = _HANDLERS.get(type(mutation))
    if handler is None:
        return _misuse(flow, "Unknown mutation type", "Unknown mutation")
    try:
        result, description = handler(flow, mutation)
    except _Rejected as exc:
        logger.debug(f'Rejected {mutation.type} on flow "{flow.id}": {exc.message}')
        return _misuse(flow, exc.message, exc.description)
    except _Unchanged as exc:
        return MutationResult(flow=flow, valid=True, errors=[], description=exc.description)

    errors = validate_flow(result) if validate else []
    return MutationResult(flow=result, valid=not errors, errors=errors, description=description)


def apply_mutation(flow: FlowDefinition, mutation: Mutation) -> MutationResult:
    """Apply ``mutation`` to ``flow`` and re-validate the result.

    The returned flow is the mutated one even when ``valid`` is ``False``
    because of invariant violations; callers decide whether to keep it.
    Referencing a missing step returns the original flow unmodified.
    """
    return _apply(flow, mutation, validate=True)


def generate_step_id(base_name: str, existing_ids: Iterable[str]) -> str:
    """Slugify ``base_name`` into an id not present in ``existing_ids``."""
    existing = set(existing_ids)
    slug = re.sub(r"[^a-z0-9]+", "-", base_name.lower()).strip("-") or "step"
    if slug not in existing:
        return slug
    for i in range(2, 100):
        candidate = f"{slug}-{i}"
        if candidate not in existing:
            return candidate
    return f"{slug}-{now_ms()}"


def create_blank_step(
    kind: StepKind,
    name: str,
    existing_ids: Iterable[str],
    depends_on: Iterable[str] = (),
) -> FlowStep:
    """Create a step of ``kind`` that already satisfies its kind contract."""
    fields: Dict[str, Any] = {}
    if kind == "llm":
        fields["prompt"] = f"Instructions for {name}."
        fields["output_schema"] = [SchemaField(name="result", type="object", description="Output")]
    elif kind in ("user-input", "transform", "validate"):
        fields["input_schema"] = [SchemaField(name="input", type="object", description="Input")]
        fields["output_schema"] = [SchemaField(name="output", type="object", description="Output")]
    return FlowStep(
        id=generate_step_id(name, existing_ids),
        name=name,
        kind=kind,
        description=f"New {kind} step",
        depends_on=list(depends_on),
        **fields,
    )

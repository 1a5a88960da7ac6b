"""Core schema contracts for flowgraph flows and execution traces."""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StepKind = Literal[
    "llm", "user-input", "transform", "validate", "display", "chat", "external-input"
]
StepStatus = Literal["idle", "running", "success", "error", "skipped"]
ExecutionStatus = Literal["running", "completed", "failed"]
FieldType = Literal["string", "number", "boolean", "object", "array"]

STEP_KINDS: tuple[str, ...] = (
    "llm",
    "user-input",
    "transform",
    "validate",
    "display",
    "chat",
    "external-input",
)
TERMINAL_STATUSES = frozenset({"completed", "failed"})


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys with flow authors and storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SchemaField(CamelModel):
    """One named field of a step's input or output contract."""

    name: str
    type: FieldType
    description: str
    example: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class FlowOutput(CamelModel):
    """Describes the single logical output of a flow."""

    name: str
    type: FieldType
    description: str

    model_config = ConfigDict(frozen=True)


class FlowPhase(CamelModel):
    """User-facing progress group covering a set of steps."""

    id: str
    label: str
    step_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class FlowStep(CamelModel):
    """A single node of a flow graph.

    The graph structure lives entirely in ``depends_on``; the order of the
    ids in that list carries no meaning.
    """

    id: str
    name: str
    kind: StepKind = Field(validation_alias=AliasChoices("kind", "type"))
    subtype: Optional[str] = None
    description: str
    prompt: Optional[str] = None
    user_message: Optional[str] = None
    model: Optional[str] = None
    input_schema: Optional[List[SchemaField]] = None
    output_schema: Optional[List[SchemaField]] = None
    depends_on: List[str] = Field(default_factory=list)
    parallel: Optional[bool] = None

    model_config = ConfigDict(frozen=True)


class FlowDefinition(CamelModel):
    """A named, versioned DAG of steps."""

    id: str
    name: str
    description: str
    version: str
    location: Optional[str] = None
    component_path: Optional[str] = None
    steps: List[FlowStep] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    output: Optional[FlowOutput] = None
    icon: Optional[str] = None
    voice_triggers: Optional[List[str]] = None
    phases: Optional[List[FlowPhase]] = None
    website_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> Optional[FlowStep]:
        """Return the first step with ``step_id`` or ``None``."""
        return next((s for s in self.steps if s.id == step_id), None)


class TokenUsage(CamelModel):
    """Token counters reported by a model call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class StepExecution(CamelModel):
    """Runtime record of one step within a flow run."""

    step_id: str
    status: StepStatus = "idle"
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    duration_ms: Optional[int] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    raw_response: Optional[str] = None
    usage: Optional[TokenUsage] = None


class FlowExecution(CamelModel):
    """Execution trace of one run of a flow."""

    id: str
    flow_id: str
    started_at: int = Field(default_factory=now_ms)
    completed_at: Optional[int] = None
    status: ExecutionStatus = "running"
    steps: Dict[str, StepExecution] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def new_execution(flow_id: str) -> FlowExecution:
    """Create an empty running execution for ``flow_id``."""
    execution_id = f"exec-{now_ms()}-{uuid.uuid4().hex[:6]}"
    return FlowExecution(id=execution_id, flow_id=flow_id)

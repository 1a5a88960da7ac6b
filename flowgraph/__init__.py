"""Flowgraph: declarative AI workflow graphs with validation, layout and tracing."""

from .contracts import FlowDefinition, FlowExecution, FlowStep, StepExecution
from .cost import CostModel, estimate_cost, format_cost
from .layout import compute_layout
from .mutations import apply_mutation, parse_mutation
from .registry import REGISTRY, FlowRegistry, get_flow_by_id
from .store import ExecutionStore, get_execution_store
from .tracker import FlowExecutionTracker
from .validation import validate_flow, validate_registry

__version__ = "0.1.0"
__all__ = [
    "FlowDefinition",
    "FlowStep",
    "FlowExecution",
    "StepExecution",
    "FlowRegistry",
    "REGISTRY",
    "get_flow_by_id",
    "validate_flow",
    "validate_registry",
    "apply_mutation",
    "parse_mutation",
    "compute_layout",
    "ExecutionStore",
    "get_execution_store",
    "FlowExecutionTracker",
    "CostModel",
    "estimate_cost",
    "format_cost",
]

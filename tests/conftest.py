from typing import List, Optional

import pytest

import flowgraph.cost as cost
import flowgraph.store as store
from flowgraph.contracts import FlowDefinition, FlowStep, SchemaField


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from a real flowgraph.yaml and the shared default store."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FLOWGRAPH_CONFIG", raising=False)
    monkeypatch.delenv("FLOWGRAPH_HISTORY_URL", raising=False)
    store.set_execution_store(None)
    yield
    store.set_execution_store(None)
    cost.set_cost_model(cost.CostModel())


def display_step(step_id: str, depends_on: Optional[List[str]] = None) -> FlowStep:
    return FlowStep(
        id=step_id,
        name=step_id.replace("-", " ").title(),
        kind="display",
        description=f"Shows {step_id}",
        depends_on=depends_on or [],
    )


def llm_step(step_id: str, depends_on: Optional[List[str]] = None) -> FlowStep:
    return FlowStep(
        id=step_id,
        name=step_id.title(),
        kind="llm",
        description=f"Generates {step_id}",
        prompt="Do the thing.",
        output_schema=[SchemaField(name="result", type="string", description="Result")],
        depends_on=depends_on or [],
    )


def make_flow(*steps: FlowStep, flow_id: str = "test-flow") -> FlowDefinition:
    return FlowDefinition(
        id=flow_id,
        name="Test Flow",
        description="A flow used in tests",
        version="1.0.0",
        steps=list(steps),
    )

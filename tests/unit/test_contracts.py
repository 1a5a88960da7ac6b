"""Tests for the flow and execution schema contracts."""

import pytest
from pydantic import ValidationError

from flowgraph.contracts import (
    FlowDefinition,
    FlowExecution,
    FlowStep,
    StepExecution,
    new_execution,
)


def test_step_accepts_type_as_kind_alias():
    step = FlowStep.model_validate(
        {
            "id": "ask",
            "name": "Ask",
            "type": "user-input",
            "description": "Ask the user",
            "dependsOn": ["start"],
            "userMessage": "Pick one",
        }
    )
    assert step.kind == "user-input"
    assert step.depends_on == ["start"]
    assert step.user_message == "Pick one"


def test_step_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        FlowStep(id="x", name="X", kind="teleport", description="nope")


def test_flow_definition_round_trips_camel_case():
    flow = FlowDefinition.model_validate(
        {
            "id": "f",
            "name": "F",
            "description": "d",
            "version": "1.0.0",
            "componentPath": "flows/f",
            "steps": [{"id": "a", "name": "A", "kind": "display", "description": "a"}],
        }
    )
    dumped = flow.model_dump(by_alias=True, exclude_none=True)
    assert dumped["componentPath"] == "flows/f"
    assert dumped["steps"][0]["dependsOn"] == []
    assert flow.step_ids() == ["a"]
    assert flow.get_step("a").name == "A"
    assert flow.get_step("missing") is None


def test_flow_definition_is_frozen():
    flow = FlowDefinition(id="f", name="F", description="d", version="1")
    with pytest.raises(ValidationError):
        flow.name = "changed"


def test_new_execution_starts_running():
    execution = new_execution("ai-clip")
    assert execution.flow_id == "ai-clip"
    assert execution.status == "running"
    assert execution.id.startswith("exec-")
    assert execution.steps == {}
    assert not execution.is_terminal


def test_execution_ids_are_unique():
    ids = {new_execution("f").id for _ in range(50)}
    assert len(ids) == 50


def test_terminal_statuses():
    assert FlowExecution(id="e", flow_id="f", status="completed").is_terminal
    assert FlowExecution(id="e", flow_id="f", status="failed").is_terminal


def test_step_execution_defaults_to_idle():
    step = StepExecution(step_id="a")
    assert step.status == "idle"
    assert step.usage is None

"""End-to-end run of a flow: edit, lay out, execute, persist and price."""

import pytest
from typer.testing import CliRunner

import flowgraph.store as store_module
from flowgraph.cli import app
from flowgraph.cost import estimate_cost, format_cost
from flowgraph.layout import compute_layout
from flowgraph.mutations import AddStep, Batch, Connect, apply_mutation, create_blank_step
from flowgraph.persistence import SQLiteHistoryStorage
from flowgraph.registry import get_flow_by_id
from flowgraph.store import ExecutionStore
from flowgraph.tracker import FlowExecutionTracker
from flowgraph.validation import validate_flow


@pytest.mark.asyncio
async def test_edit_run_and_reload_flow(tmp_path):
    flow = get_flow_by_id("ai-consultation")
    assert flow is not None

    summary = create_blank_step("display", "Email Summary", flow.step_ids())
    edit = Batch(
        mutations=[
            AddStep(step=summary),
            Connect(from_id="analysis", to_id=summary.id),
        ],
        description="Add email summary",
    )
    result = apply_mutation(flow, edit)
    assert result.valid, result.errors
    edited = result.flow
    assert validate_flow(edited) == []

    layout = compute_layout(edited.steps)
    assert layout.node_positions[summary.id].col == layout.node_positions["analysis"].col + 1

    db_path = tmp_path / "history.db"
    store = ExecutionStore(SQLiteHistoryStorage(db_path), history_limit=5)
    tracker = FlowExecutionTracker(edited.id, store)
    usage = {"promptTokens": 1000, "completionTokens": 500, "totalTokens": 1500}

    for step in edited.steps:
        if step.kind == "user-input":
            tracker.resolve_user_input(step.id, {"answers": ["yes"]})
        elif step.kind == "llm":

            async def call_model(step_id=step.id):
                return {"step": step_id}

            await tracker.atrack_step(step.id, {"upstream": step.depends_on}, call_model, usage=usage)
        else:
            tracker.track_step(step.id, None, lambda: "rendered")

    execution = tracker.complete()
    assert all(s.status == "success" for s in execution.steps.values())

    reloaded = ExecutionStore(SQLiteHistoryStorage(db_path))
    archived = reloaded.get_historical_execution(edited.id, execution.id)
    assert archived is not None
    assert archived.steps == execution.steps

    llm_steps = sum(1 for step in edited.steps if step.kind == "llm")
    cost = estimate_cost(archived.steps)
    assert cost == pytest.approx(0.00045 * llm_steps)
    assert format_cost(cost).startswith("$0.001")


def test_cli_reads_history_written_by_tracker(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWGRAPH_HISTORY_URL", f"sqlite://{tmp_path / 'shared.db'}")

    tracker = FlowExecutionTracker("ai-clip", store_module.get_execution_store())
    tracker.track_step(
        "deep-research",
        "topic",
        lambda: {"facts": []},
        usage={"promptTokens": 20_000, "completionTokens": 10_000, "totalTokens": 30_000},
    )
    tracker.fail("generation timed out")

    # a fresh process-wide store reads the same database
    store_module.set_execution_store(None)
    result = CliRunner().invoke(app, ["history", "list", "ai-clip"])

    assert result.exit_code == 0, result.stdout
    assert tracker.execution.id in result.stdout
    assert "failed" in result.stdout
    assert "$0.0090" in result.stdout

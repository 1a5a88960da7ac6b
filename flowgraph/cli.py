"""Command line interface for inspecting flows and execution history."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from flowgraph.config import load_config
from flowgraph.contracts import FlowExecution
from flowgraph.cost import CostModel, estimate_cost, format_cost
from flowgraph.layout import compute_layout
from flowgraph.registry import REGISTRY, FlowRegistry
from flowgraph.store import get_execution_store
from flowgraph.validation import format_error

app = typer.Typer(help="CLI for flowgraph flows")

# Command groups
flow_app = typer.Typer(help="Commands for inspecting flow definitions")
history_app = typer.Typer(help="Commands for browsing execution history")

app.add_typer(flow_app, name="flow")
app.add_typer(history_app, name="history")

FlowsOption = typer.Option(None, "--flows", help="YAML file or directory of flow definitions")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    """flowgraph CLI entry point."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _load_registry(flows: Optional[Path]) -> FlowRegistry:
    if flows is not None:
        return FlowRegistry.from_yaml(flows)
    config = load_config()
    if config.flows_path:
        return FlowRegistry.from_yaml(config.flows_path)
    return REGISTRY


def _format_ts(ms: Optional[int]) -> str:
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def _cost_model() -> CostModel:
    return CostModel.from_config(load_config().pricing)


@flow_app.command("list")
def flow_list(flows: Optional[Path] = FlowsOption) -> None:
    """
    List every valid flow with its version and step count.

    Flows rejected by validation are listed afterwards in red.

    Example:
        flowgraph flow list
        # Output: video-discovery    2.0.0    6 steps    AI Video Discovery
    """
    registry = _load_registry(flows)
    if not len(registry) and not registry.rejected:
        typer.echo("No flows found")
        return
    for flow in registry:
        typer.echo(f"{flow.id}\t{flow.version}\t{len(flow.steps)} steps\t{flow.name}")
    for flow_id, errors in registry.rejected.items():
        typer.secho(f"{flow_id}\tREJECTED ({len(errors)} violations)", fg=typer.colors.RED)


@flow_app.command("show")
def flow_show(flow_id: str, flows: Optional[Path] = FlowsOption) -> None:
    """
    Show a flow's metadata and its steps with their dependencies.

    Example:
        flowgraph flow show ai-clip
        # Output: Flow ai-clip: AI Clip (1.0.0)
        #         - deep-research [llm]
        #         - write-clip-script [llm] <- deep-research
    """
    flow = _load_registry(flows).get(flow_id)
    if flow is None:
        typer.echo("Flow not found")
        raise typer.Exit(code=1)
    typer.echo(f"Flow {flow.id}: {flow.name} ({flow.version})")
    typer.echo(flow.description)
    if flow.tags:
        typer.echo(f"Tags: {', '.join(flow.tags)}")
    if flow.output:
        typer.echo(f"Output: {flow.output.name} ({flow.output.type})")
    for step in flow.steps:
        deps = f" <- {', '.join(step.depends_on)}" if step.depends_on else ""
        parallel = " (parallel)" if step.parallel else ""
        typer.echo(f"- {step.id} [{step.kind}]{parallel}{deps}")


@flow_app.command("validate")
def flow_validate(path: Path) -> None:
    """
    Validate flow definitions stored in YAML.

    Exits with code 1 when any flow breaks an invariant.

    Example:
        flowgraph flow validate ./flows
        # Output: [I1] step="a": Flow contains a cycle: a -> b -> a
    """
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    registry = FlowRegistry.from_yaml(path)
    for flow_id, errors in registry.rejected.items():
        typer.secho(f'Flow "{flow_id}" is invalid:', fg=typer.colors.RED)
        for error in errors:
            typer.echo(f"  {format_error(error)}")
    if registry.rejected:
        raise typer.Exit(code=1)
    typer.echo(f"All {len(registry)} flow(s) valid")


@flow_app.command("layout")
def flow_layout(
    flow_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the full layout as JSON"),
    flows: Optional[Path] = FlowsOption,
) -> None:
    """
    Print the column layout computed for a flow.

    Example:
        flowgraph flow layout video-discovery
        # Output: column 0: research-topics
        #         column 1: prefetch-videos, select-topic
    """
    flow = _load_registry(flows).get(flow_id)
    if flow is None:
        typer.echo("Flow not found")
        raise typer.Exit(code=1)
    layout = compute_layout(flow.steps)
    if as_json:
        typer.echo(layout.model_dump_json(indent=2))
        return
    columns: dict[int, list] = {}
    for node in sorted(layout.node_positions.values(), key=lambda n: (n.col, n.row)):
        columns.setdefault(node.col, []).append(node.step_id)
    for col, step_ids in columns.items():
        typer.echo(f"column {col}: {', '.join(step_ids)}")
    typer.echo(f"size: {layout.total_width:g} x {layout.total_height:g}")


@history_app.command("list")
def history_list(flow_id: str) -> None:
    """
    List archived runs of a flow, newest first.

    Example:
        flowgraph history list ai-clip
        # Output: exec-1700000000000-a1b2c3    completed    2023-11-14T22:13:20+00:00    $0.0012
    """
    history = get_execution_store().get_execution_history(flow_id)
    if not history:
        typer.echo("No executions found")
        return
    model = _cost_model()
    for execution in history:
        cost = format_cost(estimate_cost(execution.steps, model))
        typer.echo(
            f"{execution.id}\t{execution.status}\t{_format_ts(execution.started_at)}\t{cost}"
        )


def _echo_execution(execution: FlowExecution) -> None:
    typer.echo(f"Execution {execution.id} of {execution.flow_id}: {execution.status}")
    typer.echo(f"Started: {_format_ts(execution.started_at)}")
    typer.echo(f"Completed: {_format_ts(execution.completed_at)}")
    for step_id, step in execution.steps.items():
        duration = f" {step.duration_ms}ms" if step.duration_ms is not None else ""
        tokens = f" {step.usage.total_tokens} tokens" if step.usage else ""
        error = f" error={step.error}" if step.error else ""
        typer.echo(f"- {step_id}: {step.status}{duration}{tokens}{error}")


@history_app.command("show")
def history_show(flow_id: str, execution_id: str) -> None:
    """Show the step-by-step trace of one archived run."""
    execution = get_execution_store().get_historical_execution(flow_id, execution_id)
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    _echo_execution(execution)


@history_app.command("clear")
def history_clear(flow_id: Optional[str] = typer.Argument(None)) -> None:
    """Clear the archived runs of one flow, or of all flows."""
    get_execution_store().clear_history(flow_id)
    typer.echo(f"Cleared history for {flow_id}" if flow_id else "Cleared all history")


@app.command("cost")
def cost(flow_id: str, execution_id: Optional[str] = typer.Argument(None)) -> None:
    """
    Estimate the token cost of a run (the latest archived one by default).

    Example:
        flowgraph cost ai-clip
        # Output: exec-1700000000000-a1b2c3: $0.0012 (gemini-2.5-flash)
    """
    store = get_execution_store()
    if execution_id:
        execution = store.get_historical_execution(flow_id, execution_id)
    else:
        history = store.get_execution_history(flow_id)
        execution = history[0] if history else None
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    model = _cost_model()
    value = estimate_cost(execution.steps, model)
    typer.echo(f"{execution.id}: {format_cost(value)} ({model.model})")

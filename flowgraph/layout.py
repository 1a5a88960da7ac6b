"""DAG layout engine.

Computes 2D positions for flow steps from their dependency graph. Steps are
arranged left-to-right in columns by depth, with parallel branches stacked
vertically within each column:

1. Assign each step a column: the length of the longest dependency chain
   ending at it (roots are column 0).
2. Order each column by the mean row of the step's dependencies
   (barycenter heuristic) to reduce edge crossings.
3. Convert column/row indices to pixel coordinates.
4. Build cubic Bezier paths for every dependency edge, spreading anchors
   when a node has several incoming or outgoing edges.
"""

from __future__ import annotations

from collections import deque
from functools import lru_cache
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .contracts import FlowStep

NODE_W = 220
NODE_H = 72
COL_GAP = 100
ROW_GAP = 24
PADDING = 40

Direction = Literal["left", "right", "up", "down"]
_StructureKey = Tuple[Tuple[str, Tuple[str, ...]], ...]


class NodeLayout(BaseModel):
    step_id: str
    col: int
    row: int
    x: float
    y: float

    model_config = ConfigDict(frozen=True)


class EdgeLayout(BaseModel):
    from_id: str
    to_id: str
    path: str
    x1: float
    y1: float
    x2: float
    y2: float

    model_config = ConfigDict(frozen=True)


class DAGLayout(BaseModel):
    """Layout result for one flow structure."""

    node_positions: Dict[str, NodeLayout] = Field(default_factory=dict)
    edges: Tuple[EdgeLayout, ...] = ()
    total_width: float = 0
    total_height: float = 0
    column_count: int = 0
    max_lane_count: int = 0

    model_config = ConfigDict(frozen=True)


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _assign_columns(order: List[str], deps: Dict[str, List[str]]) -> Dict[str, int]:
    """Longest-path leveling (Kahn's algorithm)."""
    dependents: Dict[str, List[str]] = {step_id: [] for step_id in order}
    pending = {step_id: len(deps[step_id]) for step_id in order}
    for step_id in order:
        for dep in deps[step_id]:
            dependents[dep].append(step_id)

    column: Dict[str, int] = {}
    queue = deque(step_id for step_id in order if pending[step_id] == 0)
    while queue:
        node = queue.popleft()
        column[node] = max((column[d] + 1 for d in deps[node]), default=0)
        for child in dependents[node]:
            pending[child] -= 1
            if pending[child] == 0:
                queue.append(child)

    # steps on a cycle never reach zero pending deps; place them after
    # whatever dependencies already have a column
    for step_id in order:
        if step_id not in column:
            column[step_id] = max((column[d] + 1 for d in deps[step_id] if d in column), default=0)
    return column


@lru_cache(maxsize=128)
def _layout_for(structure: _StructureKey) -> DAGLayout:
    if not structure:
        return DAGLayout()

    order = [step_id for step_id, _ in structure]
    known = set(order)
    deps = {
        step_id: [d for d in dict.fromkeys(step_deps) if d in known and d != step_id]
        for step_id, step_deps in structure
    }
    column_of = _assign_columns(order, deps)

    columns: List[List[str]] = [[] for _ in range(max(column_of.values()) + 1)]
    for step_id in order:
        columns[column_of[step_id]].append(step_id)

    row_of: Dict[str, int] = {}

    def barycenter(step_id: str) -> float:
        rows = [row_of[d] for d in deps[step_id] if d in row_of]
        return sum(rows) / len(rows) if rows else 0.0

    for c, members in enumerate(columns):
        if c > 0:
            members.sort(key=barycenter)
        for r, step_id in enumerate(members):
            row_of[step_id] = r

    nodes = {
        step_id: NodeLayout(
            step_id=step_id,
            col=column_of[step_id],
            row=row_of[step_id],
            x=PADDING + column_of[step_id] * (NODE_W + COL_GAP),
            y=PADDING + row_of[step_id] * (NODE_H + ROW_GAP),
        )
        for step_id in order
    }

    pairs = [(dep, step_id) for step_id in order for dep in deps[step_id]]

    def by_position(step_id: str) -> Tuple[int, int]:
        return nodes[step_id].row, nodes[step_id].col

    outgoing: Dict[str, List[str]] = {}
    incoming: Dict[str, List[str]] = {}
    for source, target in pairs:
        outgoing.setdefault(source, []).append(target)
        incoming.setdefault(target, []).append(source)
    for targets in outgoing.values():
        targets.sort(key=by_position)
    for sources in incoming.values():
        sources.sort(key=by_position)

    edges: List[EdgeLayout] = []
    for source, target in pairs:
        src, dst = nodes[source], nodes[target]
        out_slots, in_slots = outgoing[source], incoming[target]
        x1 = src.x + NODE_W
        y1 = src.y + NODE_H * (out_slots.index(target) + 1) / (len(out_slots) + 1)
        x2 = dst.x
        y2 = dst.y + NODE_H * (in_slots.index(source) + 1) / (len(in_slots) + 1)
        dx = (x2 - x1) * 0.5
        path = (
            f"M {_fmt(x1)} {_fmt(y1)} "
            f"C {_fmt(x1 + dx)} {_fmt(y1)}, {_fmt(x2 - dx)} {_fmt(y2)}, {_fmt(x2)} {_fmt(y2)}"
        )
        edges.append(
            EdgeLayout(from_id=source, to_id=target, path=path, x1=x1, y1=y1, x2=x2, y2=y2)
        )

    column_count = len(columns)
    max_lane_count = max(len(members) for members in columns)
    return DAGLayout(
        node_positions=nodes,
        edges=tuple(edges),
        total_width=PADDING * 2 + column_count * NODE_W + (column_count - 1) * COL_GAP,
        total_height=PADDING * 2 + max_lane_count * NODE_H + (max_lane_count - 1) * ROW_GAP,
        column_count=column_count,
        max_lane_count=max_lane_count,
    )


def compute_layout(steps: Sequence[FlowStep]) -> DAGLayout:
    """Compute the layout for ``steps``.

    The result depends only on step ids and dependencies, so identical
    structures reuse one cached computation. Each call gets its own
    ``node_positions`` mapping. Dependencies on unknown ids and cycle
    back-edges are ignored rather than raising.
    """
    seen: set[str] = set()
    structure = []
    for step in steps:
        if step.id in seen:
            continue
        seen.add(step.id)
        structure.append((step.id, tuple(step.depends_on)))
    layout = _layout_for(tuple(structure))
    return layout.model_copy(update={"node_positions": dict(layout.node_positions)})


def fit_to_view(
    layout: DAGLayout, viewport_width: float, viewport_height: float, max_scale: float = 1.0
) -> float:
    """Scale factor that fits the whole layout into the viewport."""
    if layout.total_width <= 0 or layout.total_height <= 0:
        return max_scale
    return min(
        viewport_width / layout.total_width,
        viewport_height / layout.total_height,
        max_scale,
    )


def navigate(layout: DAGLayout, step_id: str, direction: Direction) -> Optional[str]:
    """Return the step reached from ``step_id`` by a keyboard move.

    ``up``/``down`` move within the column; ``left``/``right`` jump to the
    adjacent column, landing on the node whose row is closest.
    """
    current = layout.node_positions.get(step_id)
    if current is None:
        return None

    if direction in ("up", "down"):
        row = current.row - 1 if direction == "up" else current.row + 1
        candidates = [
            n for n in layout.node_positions.values() if n.col == current.col and n.row == row
        ]
    else:
        col = current.col - 1 if direction == "left" else current.col + 1
        candidates = [n for n in layout.node_positions.values() if n.col == col]

    if not candidates:
        return None
    best = min(candidates, key=lambda n: (abs(n.row - current.row), n.row))
    return best.step_id

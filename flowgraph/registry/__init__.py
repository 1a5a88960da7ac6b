"""Flow registry: the canonical set of validated flow definitions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

import yaml
from pydantic import ValidationError

from ..contracts import FlowDefinition
from ..validation import FlowValidationError, validate_registry
from .definitions import BUILTIN_FLOWS

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


class FlowRegistry:
    """Validated collection of flows.

    Construction never fails because of a bad definition: flows breaking an
    invariant are excluded and recorded in :attr:`rejected`, keyed by flow id.
    """

    def __init__(self, candidates: Iterable[FlowDefinition]) -> None:
        self.rejected: Dict[str, List[FlowValidationError]] = {}
        self._flows: List[FlowDefinition] = validate_registry(
            candidates, on_invalid=self._record_rejection
        )

    def _record_rejection(
        self, flow: FlowDefinition, errors: List[FlowValidationError]
    ) -> None:
        self.rejected.setdefault(flow.id, []).extend(errors)

    @property
    def flows(self) -> List[FlowDefinition]:
        return list(self._flows)

    def get(self, flow_id: str) -> Optional[FlowDefinition]:
        return next((f for f in self._flows if f.id == flow_id), None)

    def ids(self) -> List[str]:
        return [f.id for f in self._flows]

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self) -> Iterator[FlowDefinition]:
        return iter(self._flows)

    def __contains__(self, flow_id: object) -> bool:
        return any(f.id == flow_id for f in self._flows)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "FlowRegistry":
        """Build a registry from a YAML file or a directory of YAML files.

        A document may hold a single flow or a list of flows. Documents that
        cannot be parsed into a :class:`FlowDefinition` are rejected under the
        ``"schema"`` invariant instead of aborting the load.
        """
        path = Path(path)
        files = (
            sorted(p for p in path.iterdir() if p.suffix in YAML_SUFFIXES)
            if path.is_dir()
            else [path]
        )

        candidates: List[FlowDefinition] = []
        schema_errors: Dict[str, List[FlowValidationError]] = {}

        def reject(flow_id: str, message: str) -> None:
            logger.error(f'Flow "{flow_id}" could not be loaded: {message}')
            schema_errors.setdefault(flow_id, []).append(
                FlowValidationError(flow_id=flow_id, invariant="schema", message=message)
            )

        for file in files:
            try:
                with open(file) as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as exc:
                reject(file.name, str(exc))
                continue
            documents = data if isinstance(data, list) else [data]
            for index, document in enumerate(documents):
                if not isinstance(document, dict):
                    reject(f"{file.name}#{index}", "flow document must be a mapping")
                    continue
                flow_id = str(document.get("id") or f"{file.name}#{index}")
                try:
                    candidates.append(FlowDefinition.model_validate(document))
                except ValidationError as exc:
                    reject(flow_id, str(exc))

        registry = cls(candidates)
        for flow_id, errors in schema_errors.items():
            registry.rejected.setdefault(flow_id, []).extend(errors)
        return registry


# Canonical registry built from the built-in catalog.
REGISTRY = FlowRegistry(BUILTIN_FLOWS)

ACTIVE_FLOW_IDS = frozenset({"video-discovery", "ai-clip", "ai-consultation", "test-newsletter"})


def get_flow_by_id(flow_id: str) -> Optional[FlowDefinition]:
    """Look up ``flow_id`` in :data:`REGISTRY`."""
    return REGISTRY.get(flow_id)


__all__ = [
    "ACTIVE_FLOW_IDS",
    "BUILTIN_FLOWS",
    "FlowRegistry",
    "REGISTRY",
    "get_flow_by_id",
]

"""Token cost estimation for execution traces."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import AliasChoices, ConfigDict, Field

from .config import PricingConfig
from .constants import DEFAULT_INPUT_PER_1K, DEFAULT_OUTPUT_PER_1K, DEFAULT_PRICING_MODEL
from .contracts import CamelModel, FlowExecution, StepExecution, TokenUsage

DISPLAY_FLOOR = 0.001


class CostModel(CamelModel):
    """Per-1K-token pricing of one model."""

    input_per_1k: float = Field(default=DEFAULT_INPUT_PER_1K, alias="inputPer1K")
    output_per_1k: float = Field(default=DEFAULT_OUTPUT_PER_1K, alias="outputPer1K")
    model: str = Field(
        default=DEFAULT_PRICING_MODEL, validation_alias=AliasChoices("model", "modelName")
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_config(cls, pricing: PricingConfig) -> "CostModel":
        return cls(
            input_per_1k=pricing.input_per_1k,
            output_per_1k=pricing.output_per_1k,
            model=pricing.model,
        )


DEFAULT_COST_MODEL = CostModel()

CostModelLike = Union[CostModel, Mapping[str, Any]]
StepLike = Union[StepExecution, Mapping[str, Any]]


def _as_model(model: CostModelLike) -> CostModel:
    return model if isinstance(model, CostModel) else CostModel.model_validate(model)


def _usage_of(step: StepLike) -> Optional[TokenUsage]:
    usage = step.usage if isinstance(step, StepExecution) else step.get("usage")
    if usage is None or isinstance(usage, TokenUsage):
        return usage
    return TokenUsage.model_validate(usage)


def compute_cost(steps: Mapping[str, StepLike], model: CostModelLike) -> float:
    """Sum prompt and completion token cost over every step reporting usage."""
    pricing = _as_model(model)
    cost = 0.0
    for step in steps.values():
        usage = _usage_of(step)
        if usage is None:
            continue
        cost += usage.prompt_tokens / 1000 * pricing.input_per_1k
        cost += usage.completion_tokens / 1000 * pricing.output_per_1k
    return cost


def format_cost(cost: float) -> str:
    """Render ``cost`` in dollars, clamping tiny values to ``"<$0.001"``."""
    if cost < DISPLAY_FLOOR:
        return "<$0.001"
    return f"${cost:.4f}"


class CostEstimator:
    """Cost estimation bound to a swappable pricing model."""

    def __init__(self, model: Optional[CostModelLike] = None) -> None:
        self._model = _as_model(model) if model is not None else DEFAULT_COST_MODEL

    @property
    def model(self) -> CostModel:
        return self._model

    def set_model(self, model: CostModelLike) -> None:
        self._model = _as_model(model)

    def estimate(self, steps: Mapping[str, StepLike]) -> float:
        return compute_cost(steps, self._model)

    def format(self, cost: float) -> str:
        return format_cost(cost)


_default_estimator = CostEstimator()


def get_cost_model() -> CostModel:
    """Pricing model currently held by the default slot."""
    return _default_estimator.model


def set_cost_model(model: CostModelLike) -> None:
    """Swap the pricing model used when none is passed explicitly."""
    _default_estimator.set_model(model)


def estimate_cost(
    steps: Mapping[str, StepLike], model: Optional[CostModelLike] = None
) -> float:
    """Estimate the cost of ``steps`` under ``model`` or the default slot."""
    if model is None:
        return _default_estimator.estimate(steps)
    return compute_cost(steps, model)


def execution_cost(execution: FlowExecution, model: Optional[CostModelLike] = None) -> float:
    return estimate_cost(execution.steps, model)

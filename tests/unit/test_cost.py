import pytest

from flowgraph.config import PricingConfig
from flowgraph.contracts import FlowExecution, StepExecution, TokenUsage
from flowgraph.cost import (
    DEFAULT_COST_MODEL,
    CostEstimator,
    CostModel,
    compute_cost,
    estimate_cost,
    execution_cost,
    format_cost,
    get_cost_model,
    set_cost_model,
)


def _steps(prompt: int, completion: int):
    return {
        "a": StepExecution(
            step_id="a",
            status="success",
            usage=TokenUsage(
                prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion
            ),
        ),
        "b": StepExecution(step_id="b", status="success"),
    }


def test_compute_cost_uses_per_1k_pricing():
    model = {"inputPer1K": 0.00015, "outputPer1K": 0.0006}
    assert compute_cost(_steps(1000, 500), model) == pytest.approx(0.00045)


def test_compute_cost_accepts_plain_mappings():
    steps = {
        "a": {"usage": {"promptTokens": 2000, "completionTokens": 0}},
        "b": {"usage": None},
        "c": {},
    }
    assert compute_cost(steps, DEFAULT_COST_MODEL) == pytest.approx(0.0003)


def test_compute_cost_without_usage_is_zero():
    assert compute_cost({}, DEFAULT_COST_MODEL) == 0.0
    assert compute_cost(_steps(0, 0), DEFAULT_COST_MODEL) == 0.0


def test_format_cost():
    assert format_cost(0.0) == "<$0.001"
    assert format_cost(0.00045) == "<$0.001"
    assert format_cost(0.001) == "$0.0010"
    assert format_cost(0.01) == "$0.0100"
    assert format_cost(1.23456) == "$1.2346"


def test_cost_model_from_config():
    model = CostModel.from_config(PricingConfig(input_per_1k=0.001, output_per_1k=0.002, model="m"))
    assert model.model == "m"
    assert compute_cost(_steps(1000, 1000), model) == pytest.approx(0.003)


def test_cost_model_accepts_model_name_alias():
    model = CostModel.model_validate({"modelName": "gpt", "inputPer1K": 1, "outputPer1K": 2})
    assert model.model == "gpt"
    assert model.input_per_1k == 1


def test_default_slot_can_be_swapped():
    assert get_cost_model() == DEFAULT_COST_MODEL
    assert estimate_cost(_steps(1000, 500)) == pytest.approx(0.00045)

    set_cost_model({"inputPer1K": 0.01, "outputPer1K": 0.02, "model": "pricey"})

    assert get_cost_model().model == "pricey"
    assert estimate_cost(_steps(1000, 500)) == pytest.approx(0.02)
    assert estimate_cost(_steps(1000, 500), DEFAULT_COST_MODEL) == pytest.approx(0.00045)


def test_estimator_and_execution_cost():
    estimator = CostEstimator()
    assert estimator.model == DEFAULT_COST_MODEL
    estimator.set_model(CostModel(input_per_1k=1.0, output_per_1k=1.0))
    assert estimator.format(estimator.estimate(_steps(10, 10))) == "$0.0200"

    execution = FlowExecution(id="e", flow_id="f", status="completed", steps=_steps(1000, 500))
    assert execution_cost(execution) == pytest.approx(0.00045)


def test_estimate_cost_on_plain_trace():
    steps = {"step1": {"usage": {"promptTokens": 1000, "completionTokens": 500, "totalTokens": 1500}}}
    cost = estimate_cost(steps, {"inputPer1K": 0.00015, "outputPer1K": 0.0006})
    assert cost == pytest.approx(0.00045)
    assert format_cost(cost) == "<$0.001"

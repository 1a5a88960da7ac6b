"""Tests for structural flow validation."""

from conftest import display_step, llm_step, make_flow

from flowgraph.contracts import FlowStep, SchemaField
from flowgraph.validation import format_error, validate_flow, validate_registry


def _invariants(errors):
    return [e.invariant for e in errors]


def test_valid_flow_has_no_errors():
    flow = make_flow(display_step("a"), display_step("b", ["a"]), display_step("c", ["a", "b"]))
    assert validate_flow(flow) == []


def test_two_step_cycle_is_reported_once():
    flow = make_flow(display_step("root"), display_step("a", ["root", "b"]), display_step("b", ["a"]))
    errors = validate_flow(flow)
    cycles = [e for e in errors if e.invariant == "I1"]
    assert len(cycles) == 1
    assert "cycle" in cycles[0].message
    assert "a" in cycles[0].message and "b" in cycles[0].message


def test_self_loop_is_a_cycle():
    flow = make_flow(display_step("root"), display_step("a", ["root", "a"]))
    assert "I1" in _invariants(validate_flow(flow))


def test_no_root_reported():
    flow = make_flow(display_step("a", ["b"]), display_step("b", ["a"]))
    invariants = _invariants(validate_flow(flow))
    assert "I2" in invariants
    assert "I1" in invariants


def test_dangling_dependency_reported():
    flow = make_flow(display_step("a"), display_step("b", ["ghost"]))
    errors = [e for e in validate_flow(flow) if e.invariant == "I3"]
    assert errors
    assert errors[0].step_id == "b"
    assert "ghost" in errors[0].message


def test_orphan_reported():
    # "c" and "d" depend on each other only, so no root reaches them
    flow = make_flow(display_step("a"), display_step("c", ["d"]), display_step("d", ["c"]))
    orphan_ids = {
        e.step_id for e in validate_flow(flow) if e.invariant == "I3" and "orphan" in e.message
    }
    assert orphan_ids == {"c", "d"}


def test_duplicate_ids_reported():
    flow = make_flow(display_step("a"), display_step("a"))
    errors = [e for e in validate_flow(flow) if e.invariant == "I4"]
    assert len(errors) == 1
    assert "2 occurrences" in errors[0].message


def test_empty_name_and_description_reported():
    step = FlowStep(id="a", name=" ", kind="display", description="")
    errors = [e for e in validate_flow(make_flow(step)) if e.invariant == "I5"]
    assert len(errors) == 2


def test_llm_contract():
    step = FlowStep(id="a", name="A", kind="llm", description="d")
    errors = validate_flow(make_flow(step))
    assert _invariants(errors) == ["llm-contract", "llm-contract"]


def test_transform_contract_requires_both_schemas():
    schema = [SchemaField(name="x", type="string", description="x")]
    step = FlowStep(id="a", name="A", kind="transform", description="d", input_schema=schema)
    errors = validate_flow(make_flow(step))
    assert _invariants(errors) == ["transform-contract"]
    assert "outputSchema" in errors[0].message


def test_display_and_chat_have_no_contract():
    flow = make_flow(
        FlowStep(id="a", name="A", kind="chat", description="d"),
        FlowStep(id="b", name="B", kind="external-input", description="d", depends_on=["a"]),
    )
    assert validate_flow(flow) == []


def test_format_error():
    flow = make_flow(display_step("a", ["a"]))
    rendered = [format_error(e) for e in validate_flow(flow)]
    assert any(r.startswith('[I1] step="a":') for r in rendered)
    assert any(r.startswith("[I2]:") for r in rendered)


def test_validate_registry_excludes_invalid_flows(caplog):
    good = make_flow(llm_step("a"), flow_id="good")
    bad = make_flow(display_step("a", ["missing"]), flow_id="bad")
    rejected = {}

    valid = validate_registry([good, bad], on_invalid=lambda f, errs: rejected.update({f.id: errs}))

    assert [f.id for f in valid] == ["good"]
    assert list(rejected) == ["bad"]
    assert 'Flow "bad" failed validation' in caplog.text

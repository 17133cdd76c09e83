"""Tests for per-method input adaptation."""

import pytest

from conflux.agents.input_adapter import DEFAULTS, convert_input_for_method, convert_input_for_methods
from conflux.agents.methods import METHOD_SPECS, get_spec
from conflux.schemas.thinking import THINKING_METHODS


def test_every_method_has_a_rule():
    converted = convert_input_for_methods(list(THINKING_METHODS), {"problem": "p", "context": "c"})
    assert set(converted) == set(METHOD_SPECS)


@pytest.mark.parametrize("method", THINKING_METHODS)
def test_problem_and_context_satisfy_every_input_schema(method):
    data = convert_input_for_method(method, {"problem": "Why is the build slow?", "context": "CI logs"})
    get_spec(method).input_schema.model_validate(data)


@pytest.mark.parametrize("method", THINKING_METHODS)
def test_deterministic(method):
    data = {"problem": "p", "context": "c", "evidence": ["e"]}
    assert convert_input_for_method(method, data, "debugging") == convert_input_for_method(method, data, "debugging")


def test_problem_fills_surprising_fact():
    assert convert_input_for_method("abduction", {"problem": "p"})["surprising_fact"] == "p"


def test_explicit_field_wins_over_problem():
    data = {"surprising_fact": "f", "problem": "p"}
    assert convert_input_for_method("abduction", data)["surprising_fact"] == "f"


def test_default_prompt_when_nothing_given():
    assert convert_input_for_method("abduction", {})["surprising_fact"] == DEFAULTS["surprising_fact"]
    assert convert_input_for_method("debate", {})["proposition"] == DEFAULTS["proposition"]


def test_deductive_premises():
    data = convert_input_for_method("deductive", {"problem": "rule", "context": "case"})
    assert data["major_premise"] == "rule"
    assert data["minor_premise"] == "case"


def test_logical_information_fallbacks():
    assert convert_input_for_method("logical", {"information": ["i"], "evidence": ["e"]})["information"] == ["i"]
    assert convert_input_for_method("logical", {"evidence": ["e"]})["information"] == ["e"]
    assert convert_input_for_method("logical", {"context": "c"})["information"] == ["c"]
    assert convert_input_for_method("logical", {})["information"] == []


def test_critical_evidence_falls_back_to_context():
    assert convert_input_for_method("critical", {"claim": "x", "context": "c"})["evidence"] == ["c"]


def test_inductive_observations_from_context():
    data = convert_input_for_method("inductive", {"problem": "p", "context": "c"})
    assert data["observations"] == ["c"]
    assert data["context"] == "p"


def test_phase_becomes_domain():
    assert convert_input_for_method("critical", {"claim": "x"}, "code_review")["domain"] == "code_review"
    assert "domain" not in convert_input_for_method("critical", {"claim": "x"})


def test_caller_domain_wins_over_phase():
    data = convert_input_for_method("critical", {"claim": "x", "domain": "payments"}, "code_review")
    assert data["domain"] == "payments"


def test_unconsumed_keys_pass_through():
    previous = {"conclusion": "c"}
    data = convert_input_for_method("meta", {"problem": "p", "previous_result": previous, "deductive": previous})
    assert data["previous_result"] is previous
    assert data["deductive"] is previous
    assert "problem" not in data


def test_unknown_method():
    with pytest.raises(KeyError):
        convert_input_for_method("astrology", {})

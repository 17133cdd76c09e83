"""Tests for the auto-recovery policy and the fallback options."""

import pytest

from conflux.errors import ErrorKind
from conflux.llm.fallback import fallback_options
from conflux.llm.outcome import Failure
from conflux.llm.recovery import (
    AttemptState,
    Escalate,
    RetrySameProvider,
    backoff_delay,
    decayed_temperature,
    decide_next_action,
)
from conflux.llm.types import GenerationOptions
from conflux.schemas.methods import DeductiveOutput

BASE_PROMPT = "You are a deductive reasoner."


def _state(attempt=1, **options):
    return AttemptState(
        attempt=attempt,
        base_system_prompt=BASE_PROMPT,
        system_prompt=BASE_PROMPT,
        options=GenerationOptions(**options),
        schema=DeductiveOutput,
    )


def _schema_failure(message="Required field 'conclusion' missing"):
    return Failure(kind=ErrorKind.SCHEMA_VIOLATION, message=message)


def test_schema_violation_augments_prompt():
    action = decide_next_action(_schema_failure(), _state())
    assert isinstance(action, RetrySameProvider)
    assert action.reason == "schema_repair"
    assert action.system_prompt.startswith(BASE_PROMPT)
    assert "Required field 'conclusion' missing" in action.system_prompt
    assert "Required schema: DeductiveOutput" in action.system_prompt
    assert "  - conclusion: string" in action.system_prompt


def test_schema_violation_keeps_temperature():
    action = decide_next_action(_schema_failure(), _state(temperature=0.7))
    assert action.options.temperature == 0.7


def test_repeated_repairs_do_not_stack():
    first = decide_next_action(_schema_failure("first error"), _state())
    state = AttemptState(
        attempt=2,
        base_system_prompt=BASE_PROMPT,
        system_prompt=first.system_prompt,
        options=first.options,
        schema=DeductiveOutput,
    )
    second = decide_next_action(_schema_failure("second error"), state)
    assert "second error" in second.system_prompt
    assert "first error" not in second.system_prompt
    assert second.system_prompt.count("IMPORTANT INSTRUCTIONS:") == 1


@pytest.mark.parametrize("message", [
    "timeout after 120s waiting for provider 'openai'",
    "RateLimitError: Rate limit reached for requests",
])
def test_transient_transport_failure_decays_temperature(message):
    failure = Failure(kind=ErrorKind.TRANSPORT, message=message)
    action = decide_next_action(failure, _state(temperature=0.5))
    assert isinstance(action, RetrySameProvider)
    assert action.reason == "transient_backoff"
    assert action.options.temperature == pytest.approx(0.4)
    assert action.system_prompt == BASE_PROMPT


def test_temperature_decay_has_floor():
    assert decayed_temperature(0.1) == pytest.approx(0.1)
    assert decayed_temperature(0.11) == pytest.approx(0.1)
    assert decayed_temperature(1.0) == pytest.approx(0.8)


def test_other_transport_failure_escalates():
    failure = Failure(kind=ErrorKind.TRANSPORT, message="AuthenticationError: invalid key")
    action = decide_next_action(failure, _state())
    assert isinstance(action, Escalate)


def test_recovery_disabled_escalates():
    action = decide_next_action(_schema_failure(), _state(enable_auto_recovery=False))
    assert isinstance(action, Escalate)


@pytest.mark.parametrize("max_retries", [1, 2, 3, 5])
def test_last_attempt_escalates(max_retries):
    action = decide_next_action(_schema_failure(), _state(attempt=max_retries, max_retries=max_retries))
    assert isinstance(action, Escalate)


def test_backoff_is_exponential():
    assert [backoff_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]


def test_retry_carries_backoff_delay():
    action = decide_next_action(_schema_failure(), _state(attempt=2))
    assert action.delay == 2.0


def test_fallback_options_are_conservative():
    options = fallback_options(GenerationOptions(temperature=0.6, max_retries=4))
    assert options.max_retries == 1
    assert options.enable_auto_recovery is False
    assert options.temperature == pytest.approx(0.1)


def test_fallback_options_never_raise_temperature():
    assert fallback_options(GenerationOptions(temperature=0.0)).temperature == 0.0

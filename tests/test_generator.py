"""Tests for the structured output generator: retry, recovery, fallback."""

import asyncio

import pytest

from conftest import ScriptedBackend, SleepRecorder, make_registry
from conflux.errors import ConfigurationError, ErrorKind, GenerationError
from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.types import GenerationOptions
from conflux.schemas.examples import example_for
from conflux.schemas.methods import DeductiveOutput

SYSTEM = "You are a deductive reasoner."
USER = "Every public endpoint needs auth. /export is public."

MISSING_CONCLUSION = {k: v for k, v in example_for(DeductiveOutput).items() if k != "conclusion"}


@pytest.mark.asyncio
async def test_success_on_first_attempt(generator, backend, sleep):
    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER)
    assert outcome.ok
    assert isinstance(outcome.value, DeductiveOutput)
    assert outcome.provider == "primary"
    assert outcome.attempts == 1
    assert len(backend.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_call_carries_prompts_and_options(generator, backend):
    options = GenerationOptions(temperature=0.2, mode="tool-call", schema_name="Deduction")
    await generator.generate_outcome(DeductiveOutput, SYSTEM, USER, options=options)
    call = backend.calls[0]
    assert call.system == SYSTEM
    assert call.prompt == USER
    assert call.temperature == 0.2
    assert call.mode == "tool-call"
    assert call.name == "Deduction"


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [1, 2, 3, 5])
async def test_retry_bound(max_retries, sleep):
    primary = ScriptedBackend({"DeductiveOutput": MISSING_CONCLUSION})
    fallback = ScriptedBackend({"DeductiveOutput": MISSING_CONCLUSION})
    generator = StructuredOutputGenerator(make_registry(primary=primary, fallback=fallback), sleep=sleep)

    outcome = await generator.generate_outcome(
        DeductiveOutput, SYSTEM, USER, options=GenerationOptions(max_retries=max_retries),
    )

    assert not outcome.ok
    assert len(primary.calls) == max_retries
    assert len(fallback.calls) == 1


@pytest.mark.asyncio
async def test_backoff_timing_before_fallback(sleep):
    primary = ScriptedBackend({"DeductiveOutput": MISSING_CONCLUSION})
    generator = StructuredOutputGenerator(make_registry(primary=primary), sleep=sleep)

    await generator.generate_outcome(DeductiveOutput, SYSTEM, USER, options=GenerationOptions(max_retries=3))

    assert sleep.delays == [1.0, 2.0]
    assert sleep.total == 3.0


@pytest.mark.asyncio
async def test_schema_repair_then_success(sleep):
    primary = ScriptedBackend({"DeductiveOutput": [MISSING_CONCLUSION, example_for(DeductiveOutput)]})
    generator = StructuredOutputGenerator(make_registry(primary=primary), sleep=sleep)

    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER)

    assert outcome.ok
    assert outcome.attempts == 2
    first, second = primary.calls
    assert first.system == SYSTEM
    assert second.system.startswith(SYSTEM)
    assert "Previous error: Schema validation failed: conclusion: Field required" in second.system
    assert "Required schema: DeductiveOutput" in second.system
    assert second.temperature == first.temperature


@pytest.mark.asyncio
async def test_rate_limit_decays_temperature(sleep):
    primary = ScriptedBackend({"DeductiveOutput": [
        RuntimeError("Rate limit exceeded"),
        example_for(DeductiveOutput),
    ]})
    generator = StructuredOutputGenerator(make_registry(primary=primary), sleep=sleep)

    outcome = await generator.generate_outcome(
        DeductiveOutput, SYSTEM, USER, options=GenerationOptions(temperature=0.5),
    )

    assert outcome.ok
    assert [c.temperature for c in primary.calls] == pytest.approx([0.5, 0.4])
    assert primary.calls[1].system == SYSTEM
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_unrecoverable_error_skips_retries(sleep):
    primary = ScriptedBackend({"DeductiveOutput": RuntimeError("invalid api key")})
    fallback = ScriptedBackend()
    generator = StructuredOutputGenerator(make_registry(primary=primary, fallback=fallback), sleep=sleep)

    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER)

    assert outcome.ok
    assert outcome.provider == "fallback"
    assert len(primary.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_fallback_uses_conservative_options(sleep):
    primary = ScriptedBackend({"DeductiveOutput": RuntimeError("boom")})
    fallback = ScriptedBackend({"DeductiveOutput": MISSING_CONCLUSION})
    generator = StructuredOutputGenerator(make_registry(primary=primary, fallback=fallback), sleep=sleep)

    await generator.generate_outcome(DeductiveOutput, SYSTEM, USER, options=GenerationOptions(temperature=0.6))

    assert len(fallback.calls) == 1
    assert fallback.calls[0].temperature == pytest.approx(0.1)
    assert fallback.calls[0].system == SYSTEM


@pytest.mark.asyncio
async def test_fallback_in_registration_order(sleep):
    primary = ScriptedBackend({"DeductiveOutput": RuntimeError("down")})
    second = ScriptedBackend({"DeductiveOutput": RuntimeError("also down")})
    third = ScriptedBackend()
    generator = StructuredOutputGenerator(
        make_registry(primary=primary, second=second, third=third), sleep=sleep,
    )

    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER)

    assert outcome.ok
    assert outcome.provider == "third"
    assert len(second.calls) == 1


@pytest.mark.asyncio
async def test_named_provider_excluded_from_fallback(sleep):
    first = ScriptedBackend()
    chosen = ScriptedBackend({"DeductiveOutput": RuntimeError("down")})
    generator = StructuredOutputGenerator(make_registry(first=first, chosen=chosen), sleep=sleep)

    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER, provider_name="chosen")

    assert outcome.ok
    assert outcome.provider == "first"
    assert len(chosen.calls) == 1


@pytest.mark.asyncio
async def test_all_providers_exhausted(sleep):
    primary = ScriptedBackend({"DeductiveOutput": MISSING_CONCLUSION})
    fallback = ScriptedBackend({"DeductiveOutput": RuntimeError("down")})
    generator = StructuredOutputGenerator(make_registry(primary=primary, fallback=fallback), sleep=sleep)

    outcome = await generator.generate_outcome(DeductiveOutput, SYSTEM, USER)

    assert not outcome.ok
    assert outcome.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
    assert "primary: Schema validation failed" in outcome.message
    assert "fallback: RuntimeError: down" in outcome.message
    assert outcome.attempts == 4
    assert [c.provider for c in outcome.causes] == ["primary", "fallback"]
    assert outcome.errors[0].field == "conclusion"


@pytest.mark.asyncio
async def test_raising_variant_reports_exhaustion(sleep):
    primary = ScriptedBackend({"DeductiveOutput": RuntimeError("down")})
    generator = StructuredOutputGenerator(make_registry(primary=primary), sleep=sleep)

    with pytest.raises(GenerationError) as excinfo:
        await generator.generate_structured_output(DeductiveOutput, SYSTEM, USER)

    assert excinfo.value.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED


@pytest.mark.asyncio
async def test_raising_variant_returns_model(generator):
    result = await generator.generate_structured_output(DeductiveOutput, SYSTEM, USER)
    assert result.conclusion == example_for(DeductiveOutput)["conclusion"]


@pytest.mark.asyncio
async def test_success_is_always_schema_valid(sleep):
    responses = [
        {"conclusion": 3},
        {**example_for(DeductiveOutput), "confidence": 7},
        {"unrelated": True},
        example_for(DeductiveOutput),
    ]
    primary = ScriptedBackend({"DeductiveOutput": responses})
    generator = StructuredOutputGenerator(make_registry(primary=primary), sleep=sleep)

    outcome = await generator.generate_outcome(
        DeductiveOutput, SYSTEM, USER, options=GenerationOptions(max_retries=5),
    )

    assert outcome.ok
    assert outcome.attempts == 4
    DeductiveOutput.model_validate(outcome.value.model_dump())


@pytest.mark.asyncio
async def test_unknown_provider_is_configuration_error(generator):
    with pytest.raises(ConfigurationError):
        await generator.generate_outcome(DeductiveOutput, SYSTEM, USER, provider_name="nope")


class HangingBackend:
    async def ainvoke(self, call):
        await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_stalled_call_times_out_as_transport_failure(sleep):
    registry = make_registry(primary=HangingBackend())
    generator = StructuredOutputGenerator(registry, sleep=sleep, default_timeout=0.01)

    outcome = await generator.generate_outcome(
        DeductiveOutput, SYSTEM, USER, options=GenerationOptions(max_retries=2),
    )

    assert not outcome.ok
    first = outcome.causes[0]
    assert first.kind is ErrorKind.TRANSPORT
    assert "timeout" in first.message
    assert first.attempts == 2
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_health_check(generator):
    assert await generator.health_check() is True


@pytest.mark.asyncio
async def test_health_check_failure_does_not_fall_back(sleep):
    primary = ScriptedBackend({"HealthCheckOutput": RuntimeError("down")})
    fallback = ScriptedBackend()
    generator = StructuredOutputGenerator(make_registry(primary=primary, fallback=fallback), sleep=sleep)

    assert await generator.health_check("primary") is False
    assert fallback.calls == []

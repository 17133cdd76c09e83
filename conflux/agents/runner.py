"""Step execution for one thinking method.

MethodAgent.think(method, input, context) -> StepResult

  1. Empty input            → failed step with schema guidance
  2. Validate input         → on failure normalise (wrap strings in lists,
                              trim whitespace) and validate again
  3. Still invalid          → one input-repair call to the model, whose
                              repaired input is validated again
  4. Repair failed          → failed step with schema guidance
  5. Generate               → StructuredOutputGenerator (retry + fallback)
  6. Generation failure     → failed step, reasoning names the failure class
  7. Success                → completed step with confidence, one-line
                              reasoning and recommended next methods

A step never raises for a model or input problem. ConfigurationError is
the exception: a missing provider is not something a step can report on.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import ValidationError

from conflux.agents.methods import MethodSpec, get_spec
from conflux.constants import INPUT_REPAIR_MAX_RETRIES, INPUT_REPAIR_TEMPERATURE
from conflux.errors import ConfigurationError
from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.outcome import ValidationIssue
from conflux.llm.types import GenerationOptions, GenerationRequest
from conflux.llm.validation import describe_issues, issues_from_pydantic
from conflux.prompts.methods import input_repair_prompts
from conflux.schemas.examples import example_for, schema_requirements
from conflux.schemas.methods import InputRepairOutput
from conflux.schemas.thinking import StepResult, clamp_confidence
from conflux.utils.logging import log, get_logger

MODULE = "agents.runner"
logger = get_logger()


@dataclass(frozen=True)
class AgentContext:
    """Per-run settings shared by every step of an orchestration run."""
    phase: Optional[str] = None
    provider_name: Optional[str] = None
    run_id: Optional[str] = None
    # Ask the model to fix an input that fails validation before giving up
    repair_input: bool = True
    # Passed to GenerationOptions, e.g. {"max_retries": 2}
    option_overrides: dict[str, Any] = field(default_factory=dict)


def normalize_input(data: dict, spec: MethodSpec) -> dict:
    """Trim strings, drop None values, and wrap bare strings in list fields."""
    normalized = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if key in spec.list_fields:
                value = [value] if value else []
        elif key in spec.list_fields and isinstance(value, (list, tuple)):
            value = [v.strip() if isinstance(v, str) else v for v in value]
            value = [v for v in value if v != ""]
        normalized[key] = value
    return normalized


def build_schema_guidance(
    spec: MethodSpec,
    data: dict,
    issues: tuple[ValidationIssue, ...],
) -> dict[str, Any]:
    """Machine-readable instructions for resubmitting a step with valid input."""
    example = example_for(spec.input_schema) or {}
    required = spec.input_schema.model_json_schema().get("required", [])
    errors = [{"field": i.field, "message": i.message, "value": i.value} for i in issues]
    message = (
        f"Input for {spec.method} thinking does not match {spec.input_schema.__name__}. "
        f"Required fields: {', '.join(required)}."
    )
    return {
        "error": "input_schema_mismatch",
        "message": message,
        "recommended_input_schema": {
            "name": spec.input_schema.__name__,
            "required": required,
            "example": example,
        },
        "retry_instructions": [
            f"Provide the required fields: {', '.join(required)}.",
            "Use lists for list-valued fields and non-empty strings for text fields.",
            f"Re-run the {spec.method} step with the corrected input.",
        ],
        "client_instructions": {
            "action": "retry_with_correct_schema",
            "message": message,
            "tool_name": spec.method,
            "recommended_schema": spec.input_schema.model_json_schema(),
            "examples": [example] if example else [],
            "validation_errors": errors,
        },
        "received_keys": sorted(data),
    }


def _guidance_result(
    spec: MethodSpec,
    data: dict,
    issues: tuple[ValidationIssue, ...],
    repair_error: Optional[str] = None,
) -> StepResult:
    summary = describe_issues(issues) if issues else "input is empty"
    metadata: dict[str, Any] = {"error_kind": "input_schema_mismatch"}
    if repair_error:
        metadata["input_repair_error"] = repair_error
    return StepResult(
        method=spec.method,
        input=data,
        output={"repair_guidance": build_schema_guidance(spec, data, issues)},
        confidence=0.0,
        reasoning=f"Input does not match the {spec.method} schema: {summary}",
        status="failed",
        metadata=metadata,
    )


def _failed_result(method: str, data: dict, reason: str, **metadata: Any) -> StepResult:
    return StepResult(
        method=method,
        input=data,
        confidence=0.0,
        reasoning=f"Failed to execute {method} thinking: {reason}",
        status="failed",
        metadata=metadata,
    )


class MethodAgent:
    def __init__(self, generator: StructuredOutputGenerator):
        self.generator = generator

    async def think(self, method: str, data: dict, context: Optional[AgentContext] = None) -> StepResult:
        context = context or AgentContext()
        spec = get_spec(method)
        t0 = time.monotonic()

        log.info(logger, MODULE, "step_start", f"Running {method} thinking",
                 run_id=context.run_id, method=method, phase=context.phase)

        if not data:
            log.warning(logger, MODULE, "step_failed", "Empty step input",
                        run_id=context.run_id, method=method)
            return _guidance_result(spec, {}, ())

        repair_metadata: dict[str, Any] = {}
        try:
            typed_input = self._validate_input(spec, data)
        except ValidationError as e:
            typed_input = None
            issues = issues_from_pydantic(e)
            log.warning(logger, MODULE, "input_invalid", "Step input failed validation",
                        run_id=context.run_id, method=method, error=describe_issues(issues))

        if typed_input is None:
            if not context.repair_input:
                return _guidance_result(spec, data, issues)
            repair = await self._repair_input(spec, data, issues, context)
            if isinstance(repair, str):
                return _guidance_result(spec, data, issues, repair_error=repair)
            data, typed_input, repair_metadata = repair

        try:
            return await self._generate(spec, data, typed_input, context, t0, repair_metadata)
        except ConfigurationError:
            raise
        except Exception as e:
            log.error(logger, MODULE, "step_failed", f"{method} step raised",
                      error=str(e), error_type=type(e).__name__,
                      run_id=context.run_id, method=method)
            return _failed_result(method, data, str(e), error_kind=type(e).__name__)

    def _validate_input(self, spec: MethodSpec, data: dict):
        try:
            return spec.input_schema.model_validate(data)
        except ValidationError:
            pass
        return spec.input_schema.model_validate(normalize_input(data, spec))

    async def _repair_input(
        self,
        spec: MethodSpec,
        data: dict,
        issues: tuple[ValidationIssue, ...],
        context: AgentContext,
    ) -> Union[tuple[dict, Any, dict[str, Any]], str]:
        """One generation that rewrites `data` to fit the input schema.

        Returns (repaired data, validated input, metadata), or the reason the
        repair failed. Keys outside the input schema (earlier step results)
        are carried over untouched.
        """
        system, user = input_repair_prompts(
            spec.method,
            schema_requirements(spec.input_schema),
            data,
            [i.describe() for i in issues],
        )
        log.info(logger, MODULE, "input_repair_start", "Asking the model to repair step input",
                 run_id=context.run_id, method=spec.method, error=describe_issues(issues))
        outcome = await self.generator.generate(GenerationRequest(
            schema=InputRepairOutput,
            system_prompt=system,
            user_prompt=user,
            provider_name=context.provider_name,
            options=GenerationOptions(
                temperature=INPUT_REPAIR_TEMPERATURE,
                max_retries=INPUT_REPAIR_MAX_RETRIES,
                mode="json",
                schema_name=InputRepairOutput.__name__,
            ),
        ))
        if not outcome.ok:
            log.warning(logger, MODULE, "input_repair_failed", "Input repair generation failed",
                        run_id=context.run_id, method=spec.method, error=outcome.summary())
            return f"repair generation failed: {outcome.summary()}"

        repair = outcome.value
        passthrough = {k: v for k, v in data.items() if k not in spec.input_schema.model_fields}
        repaired = {**passthrough, **repair.repaired_data}
        try:
            typed_input = self._validate_input(spec, repaired)
        except ValidationError as e:
            error = describe_issues(issues_from_pydantic(e))
            log.warning(logger, MODULE, "input_repair_failed", "Repaired input still invalid",
                        run_id=context.run_id, method=spec.method, error=error)
            return f"repaired input still invalid: {error}"

        log.info(logger, MODULE, "input_repair_done", "Step input repaired",
                 run_id=context.run_id, method=spec.method,
                 confidence=round(repair.confidence, 3), notes=repair.repair_notes)
        return repaired, typed_input, {
            "input_repaired": True,
            "repair_notes": repair.repair_notes,
            "repair_confidence": repair.confidence,
        }

    async def _generate(
        self,
        spec: MethodSpec,
        data: dict,
        typed_input,
        context: AgentContext,
        t0: float,
        repair_metadata: dict[str, Any],
    ) -> StepResult:
        # Validated fields win; extras such as previous_result still reach the prompt
        system, user = spec.build_prompts({**data, **typed_input.model_dump()})
        outcome = await self.generator.generate(GenerationRequest(
            schema=spec.output_schema,
            system_prompt=system,
            user_prompt=user,
            provider_name=context.provider_name,
            options=spec.options(**context.option_overrides),
        ))
        duration_ms = int((time.monotonic() - t0) * 1000)

        if not outcome.ok:
            log.warning(logger, MODULE, "step_failed", f"{spec.method} generation failed",
                        run_id=context.run_id, method=spec.method,
                        kind=outcome.kind.value, error=outcome.message)
            return _failed_result(
                spec.method, data, f"{outcome.kind.value}: {outcome.message}",
                error_kind=outcome.kind.value,
                attempts=outcome.attempts,
                validation_errors=[i.describe() for i in outcome.errors],
                duration_ms=duration_ms,
            )

        output = outcome.value
        result = StepResult(
            method=spec.method,
            input=data,
            output=output.model_dump(),
            confidence=clamp_confidence(spec.confidence(output)),
            reasoning=spec.summarize(typed_input, output),
            status="completed",
            next_recommendations=spec.recommend_next(context.phase),
            metadata={
                "provider": outcome.provider,
                "attempts": outcome.attempts,
                "schema": spec.output_schema.__name__,
                "duration_ms": duration_ms,
                **repair_metadata,
            },
        )
        log.info(logger, MODULE, "step_done", f"{spec.method} thinking complete",
                 run_id=context.run_id, method=spec.method,
                 confidence=round(result.confidence, 3), duration_ms=duration_ms)
        return result

"""Auto-recovery policy.

Pure decision function, no I/O:

    decide_next_action(failure, state) -> RetrySameProvider | Escalate

Rules, in order:
  1. recovery disabled, or attempt >= max_retries  → Escalate
  2. schema violation → retry with the schema requirements and the previous
     error restated in the system prompt, temperature unchanged
  3. transport failure mentioning "timeout"/"rate limit" → retry with the
     same prompt and temperature * 0.8 (floor 0.1)
  4. anything else → Escalate

Every retry waits 2^(attempt-1) seconds first.
"""

from dataclasses import dataclass
from typing import Type, Union

from pydantic import BaseModel

from conflux.constants import TEMPERATURE_DECAY, TEMPERATURE_FLOOR
from conflux.errors import ErrorKind
from conflux.llm.outcome import Failure
from conflux.llm.types import GenerationOptions
from conflux.schemas.examples import schema_requirements

REPAIR_RULES = (
    "1. Respond with a single JSON object and nothing else.",
    "2. Include every required field.",
    "3. Use exactly the declared type for each field.",
    "4. Use only the listed values for enumerated fields.",
    "5. Keep numeric values inside their allowed ranges.",
)


@dataclass(frozen=True)
class AttemptState:
    """Where the retry loop stands after a failed attempt (1-based)."""
    attempt: int
    base_system_prompt: str
    system_prompt: str
    options: GenerationOptions
    schema: Type[BaseModel]


@dataclass(frozen=True)
class RetrySameProvider:
    system_prompt: str
    options: GenerationOptions
    delay: float
    reason: str


@dataclass(frozen=True)
class Escalate:
    reason: str


NextAction = Union[RetrySameProvider, Escalate]


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt `attempt` (1-based)."""
    return float(2 ** (attempt - 1))


def decayed_temperature(temperature: float) -> float:
    return max(temperature * TEMPERATURE_DECAY, TEMPERATURE_FLOOR)


def augment_system_prompt(base: str, schema: Type[BaseModel], failure: Failure) -> str:
    """Restate the schema and the previous validation error after `base`.

    Built from the original prompt each time so repeated repairs do not
    stack up copies of the block.
    """
    return "\n".join([
        base,
        "",
        "IMPORTANT INSTRUCTIONS:",
        "Your previous response did not satisfy the required output schema.",
        "",
        schema_requirements(schema),
        "",
        f"Previous error: {failure.message}",
        "",
        "Rules:",
        *REPAIR_RULES,
    ])


def decide_next_action(failure: Failure, state: AttemptState) -> NextAction:
    options = state.options

    if not options.enable_auto_recovery:
        return Escalate("auto-recovery disabled")
    if state.attempt >= options.max_retries:
        return Escalate(f"retries exhausted ({state.attempt}/{options.max_retries})")

    delay = backoff_delay(state.attempt)

    if failure.kind is ErrorKind.SCHEMA_VIOLATION:
        return RetrySameProvider(
            system_prompt=augment_system_prompt(state.base_system_prompt, state.schema, failure),
            options=options,
            delay=delay,
            reason="schema_repair",
        )

    if failure.is_transient:
        return RetrySameProvider(
            system_prompt=state.system_prompt,
            options=options.model_copy(
                update={"temperature": decayed_temperature(options.temperature)}
            ),
            delay=delay,
            reason="transient_backoff",
        )

    return Escalate(f"not recoverable on the same provider: {failure.kind.value}")

"""Static orchestration strategies.

Which methods run for which development phase is policy, not logic: it
lives in this table and nowhere else.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from conflux.schemas.thinking import DevelopmentPhase, ThinkingMethod


class OrchestrationStrategy(BaseModel):
    """primary + secondary methods; `sequence` (when set) is the run order."""
    model_config = ConfigDict(frozen=True)

    primary: ThinkingMethod
    secondary: list[ThinkingMethod] = Field(default_factory=list)
    sequence: Optional[list[ThinkingMethod]] = None
    max_iterations: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _sequence_not_empty(self) -> "OrchestrationStrategy":
        if self.sequence is not None and not self.sequence:
            raise ValueError("sequence must contain at least one method")
        return self

    @property
    def methods(self) -> list[str]:
        """Methods in run order: the sequence if given, else primary + secondary."""
        if self.sequence:
            return list(self.sequence)
        return list(dict.fromkeys([self.primary, *self.secondary]))


def _strategy(*sequence: str) -> OrchestrationStrategy:
    return OrchestrationStrategy(
        primary=sequence[0],
        secondary=list(sequence[1:]),
        sequence=list(sequence),
    )


PHASE_STRATEGIES: dict[str, OrchestrationStrategy] = {
    "business_exploration": _strategy("abduction", "inductive", "deductive", "meta"),
    "requirement_definition": _strategy("logical", "mece", "critical"),
    "value_hypothesis": _strategy("inductive", "critical"),
    "architecture_design": _strategy("deductive", "debate"),
    "prioritization": _strategy("mece", "logical"),
    "estimation_planning": _strategy("logical", "meta"),
    "implementation": _strategy("deductive", "critical"),
    "debugging": _strategy("abduction", "deductive", "inductive"),
    "refactoring": _strategy("critical", "mece", "logical"),
    "code_review": _strategy("critical", "deductive", "mece"),
    "test_design": _strategy("deductive", "mece", "inductive"),
    "experimentation": _strategy("inductive", "critical"),
    "decision_making": _strategy("debate", "meta"),
    "retrospective": _strategy("meta", "logical", "pac"),
    "hypothesis_breakdown": _strategy("pac", "critical"),
}

# General-purpose chain: explain, derive, generalise, challenge, structure, reflect, decide
GOLDEN_PATTERN: tuple[str, ...] = (
    "abduction",
    "deductive",
    "inductive",
    "critical",
    "logical",
    "meta",
    "debate",
)

GOLDEN_STRATEGY = OrchestrationStrategy(
    primary=GOLDEN_PATTERN[0],
    secondary=list(GOLDEN_PATTERN[1:]),
    sequence=list(GOLDEN_PATTERN),
)

# Phase to move to (or check) once a phase's run is done
PHASE_NEXT_STEPS: dict[str, tuple[str, ...]] = {
    "requirement_definition": ("Move on to prioritization (prioritization phase)",),
    "debugging": ("Move on to implementing the fix (implementation phase)",),
    "refactoring": ("Verify the changes through code review (code_review phase)",),
}


def get_strategy(phase: DevelopmentPhase) -> OrchestrationStrategy:
    """Raises KeyError for an unknown phase."""
    return PHASE_STRATEGIES[phase]


def recommend_methods(phase: DevelopmentPhase) -> list[str]:
    return get_strategy(phase).methods

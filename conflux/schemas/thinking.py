"""Orchestration result schemas.

StepResult       → one executed step (one thinking method, one generation)
IntegratedResult → the terminal artifact of one orchestration run

Both are frozen: a StepResult is built once by the step that ran and is
read-only input to everything downstream; an IntegratedResult is built
once at the end of a run.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conflux.errors import SequenceAborted


# =============================================================================
# ENUMS
# =============================================================================

ThinkingMethod = Literal[
    "abduction",
    "logical",
    "deductive",
    "inductive",
    "mece",
    "pac",
    "meta",
    "debate",
    "critical",
]

DevelopmentPhase = Literal[
    "business_exploration",
    "requirement_definition",
    "value_hypothesis",
    "architecture_design",
    "prioritization",
    "estimation_planning",
    "implementation",
    "debugging",
    "refactoring",
    "code_review",
    "test_design",
    "experimentation",
    "decision_making",
    "retrospective",
    "hypothesis_breakdown",
]

StepStatus = Literal["pending", "in_progress", "completed", "failed"]

RunStatus = Literal["completed", "partially_failed", "aborted"]

# Runs started from an explicit step list rather than a phase
RunPhase = Union[DevelopmentPhase, Literal["custom"]]

THINKING_METHODS: tuple[str, ...] = get_args(ThinkingMethod)
DEVELOPMENT_PHASES: tuple[str, ...] = get_args(DevelopmentPhase)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def clamp_confidence(value: Any) -> float:
    """Clamp to [0, 1]; non-numeric input becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(max(number, 0.0), 1.0)


# =============================================================================
# STEP RESULT
# =============================================================================

class StepResult(BaseModel):
    """Outcome of running one thinking method on one input."""
    model_config = ConfigDict(frozen=True)

    method: ThinkingMethod
    input: dict[str, Any] = Field(default_factory=dict)
    output: Optional[dict[str, Any]] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    status: StepStatus = "completed"
    timestamp: str = Field(default_factory=utc_now)
    next_recommendations: list[ThinkingMethod] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        return clamp_confidence(v)

    @model_validator(mode="after")
    def _failed_needs_reason(self) -> "StepResult":
        if self.status == "failed" and not self.reasoning.strip():
            raise ValueError("a failed step must explain why it failed")
        return self

    @property
    def completed(self) -> bool:
        return self.status == "completed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def repair_guidance(self) -> Optional[dict[str, Any]]:
        """Machine-readable input correction, present when the input was unusable."""
        if not self.output:
            return None
        guidance = self.output.get("repair_guidance")
        return guidance if isinstance(guidance, dict) else None


# =============================================================================
# INTEGRATED RESULT
# =============================================================================

class RunStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    succeeded: int = 0
    failed: int = 0
    mean_confidence: float = 0.0

    @classmethod
    def from_results(cls, results: list[StepResult]) -> "RunStats":
        done = [r for r in results if r.completed]
        mean = sum(r.confidence for r in done) / len(done) if done else 0.0
        return cls(
            succeeded=len(done),
            failed=sum(1 for r in results if r.failed),
            mean_confidence=clamp_confidence(mean),
        )


class IntegratedResult(BaseModel):
    """Everything one orchestration run produced."""
    model_config = ConfigDict(frozen=True)

    phase: RunPhase
    primary_method: ThinkingMethod
    secondary_methods: list[ThinkingMethod] = Field(default_factory=list)
    results: list[StepResult] = Field(default_factory=list)
    synthesis: str = ""
    action_items: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    next_steps: list[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now)
    status: RunStatus = "completed"
    stats: RunStats = Field(default_factory=RunStats)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        return clamp_confidence(v)

    @property
    def ok(self) -> bool:
        return self.status == "completed"

    def raise_for_status(self) -> "IntegratedResult":
        """Raise SequenceAborted for an aborted run; return self otherwise.

        A partially failed run (parallel mode) still carries usable results
        and does not raise.
        """
        if self.status == "aborted":
            raise SequenceAborted(self.synthesis or "orchestration aborted", result=self)
        return self

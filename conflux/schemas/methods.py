"""Input and output schemas for the nine thinking methods.

Inputs are what a step needs after input adaptation; outputs are the EXACT
structure the model must return. Every model output is validated against
its output schema before a step is marked completed.
"""

from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from conflux.schemas.thinking import StepStatus, ThinkingMethod

Score = Annotated[float, Field(ge=0.0, le=1.0)]


# =============================================================================
# INPUTS
# =============================================================================

class MethodInput(BaseModel):
    """Common optional fields. Unknown keys (e.g. previous_result) are ignored."""
    model_config = ConfigDict(extra="ignore")

    context: Optional[str] = None
    domain: Optional[str] = None


class AbductionInput(MethodInput):
    surprising_fact: str = Field(min_length=1, description="The observation that needs explaining")


class DeductiveInput(MethodInput):
    major_premise: str = Field(min_length=1, description="General rule or principle")
    minor_premise: str = Field(min_length=1, description="Specific case the rule applies to")


class LogicalInput(MethodInput):
    question: str = Field(min_length=1, description="The issue to reason through")
    information: list[str] = Field(default_factory=list, description="Known facts")
    constraints: list[str] = Field(default_factory=list)


class CriticalInput(MethodInput):
    claim: str = Field(min_length=1, description="The claim to examine")
    evidence: list[str] = Field(default_factory=list)


class MECEInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    purpose: str = Field(min_length=1, description="Why the items are being classified")
    items: list[str] = Field(min_length=1, description="Items to classify")
    proposed_criteria: Optional[str] = None


class InductiveInput(MethodInput):
    observations: list[str] = Field(min_length=1, description="Concrete observations")


class PACInput(MethodInput):
    claim: str = Field(min_length=1, description="Claim to split into premise, assumption, conclusion")


class MetaInput(MethodInput):
    current_thinking: str = Field(min_length=1, description="The reasoning being reviewed")
    objective: str = Field(min_length=1, description="What the reasoning is meant to achieve")


class DebateInput(MethodInput):
    proposition: str = Field(min_length=1, description="Motion, phrased as 'X should Y'")
    positions: list[str] = Field(default_factory=list)


# =============================================================================
# OUTPUTS
# =============================================================================

class Hypothesis(BaseModel):
    explanation: str
    plausibility: Score
    testable_predictions: list[str]


class AbductionOutput(BaseModel):
    hypotheses: list[Hypothesis]
    recommended_next: list[ThinkingMethod] = Field(default_factory=list)
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class QuestioningResults(BaseModel):
    question_validity: list[str]
    logical_gaps: list[str]
    assumption_challenges: list[str]
    biases: list[str]


class StrengthsWeaknesses(BaseModel):
    strengths: list[str]
    weaknesses: list[str]
    missing_evidence: list[str]


class CriticalOutput(BaseModel):
    questioning_results: QuestioningResults
    strengths_weaknesses: StrengthsWeaknesses
    recommendations: list[str]
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class Argument(BaseModel):
    argument: str
    evidence: list[str]
    strength: Score


class DebateRecommendation(BaseModel):
    decision: Literal["support", "oppose", "modify"]
    reasoning: str
    conditions: list[str] = Field(default_factory=list)


class DebateOutput(BaseModel):
    proposition: str
    pro_arguments: list[Argument]
    con_arguments: list[Argument]
    key_disputes: list[str]
    recommendation: DebateRecommendation
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class ValidityCheck(BaseModel):
    is_valid: bool
    reasoning: str
    premise_reliability: Score


class DeductiveOutput(BaseModel):
    conclusion: str
    validity_check: ValidityCheck
    implications: list[str]
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class Generalization(BaseModel):
    pattern: str
    confidence: Score
    supporting_evidence: list[str]
    exceptions: list[str] = Field(default_factory=list)


class InductiveOutput(BaseModel):
    generalizations: list[Generalization]
    sample_size: int = Field(ge=0)
    bias_warnings: list[str] = Field(default_factory=list)
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class LogicalStep(BaseModel):
    step: str
    evidence: list[str]
    inference: str


class PyramidSupport(BaseModel):
    claim: str
    evidence: list[str]


class Pyramid(BaseModel):
    conclusion: str
    supports: list[PyramidSupport]


class LogicalOutput(BaseModel):
    """Pyramid-structured argument. `reasoning` is the step list, not prose."""
    conclusion: str
    reasoning: list[LogicalStep]
    pyramid: Pyramid
    confidence: Score
    status: Optional[StepStatus] = None


class Category(BaseModel):
    name: str
    items: list[str]
    coverage: str


class MECEOutput(BaseModel):
    criteria: str
    categories: list[Category]
    gaps: list[str]
    overlaps: list[str]
    completeness_score: Score
    reasoning: str
    status: Optional[StepStatus] = None


class ProcessEvaluation(BaseModel):
    current_process: list[str]
    effectiveness: Score
    gaps: list[str]


class MetaRecommendation(BaseModel):
    aspect: str
    improvement: str
    priority: Literal["high", "medium", "low"]


class MetaOutput(BaseModel):
    process_evaluation: ProcessEvaluation
    recommendations: list[MetaRecommendation]
    alternative_approaches: list[str]
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


class AssumptionValidity(BaseModel):
    is_valid: bool
    concerns: list[str]
    test_methods: list[str]


class PremiseValidity(BaseModel):
    is_reliable: bool
    biases: list[str]
    verification_needed: list[str]


class PACOutput(BaseModel):
    premise: str
    assumption: str
    conclusion: str
    assumptions_validity: AssumptionValidity
    premise_validity: PremiseValidity
    confidence: Score
    reasoning: str
    status: Optional[StepStatus] = None


# =============================================================================
# INPUT REPAIR
# =============================================================================

class InputRepairOutput(BaseModel):
    """Model-proposed correction of a step input that failed validation."""
    repaired_data: dict[str, Any] = Field(description="The input rewritten to match the target schema")
    repair_notes: str = Field(description="What was changed and why")
    confidence: Score

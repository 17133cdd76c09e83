"""Thinking method table.

One MethodSpec per method: schemas, prompt builder, generation options,
and the three post-processing hooks a step needs once the model output
has validated:

  confidence(output)        → float, clamped later
  summarize(input, output)  → one-line reasoning for the synthesis narrative
  recommend_next(phase)     → methods worth running afterwards
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type

from pydantic import BaseModel

from conflux.llm.types import GenerationOptions
from conflux.prompts import methods as prompts
from conflux.schemas.methods import (
    AbductionInput,
    AbductionOutput,
    CriticalInput,
    CriticalOutput,
    DebateInput,
    DebateOutput,
    DeductiveInput,
    DeductiveOutput,
    InductiveInput,
    InductiveOutput,
    LogicalInput,
    LogicalOutput,
    MECEInput,
    MECEOutput,
    MetaInput,
    MetaOutput,
    PACInput,
    PACOutput,
)


@dataclass(frozen=True)
class MethodSpec:
    method: str
    description: str
    input_schema: Type[BaseModel]
    output_schema: Type[BaseModel]
    build_prompts: Callable[[dict], tuple[str, str]]
    temperature: float
    confidence: Callable[[Any], float]
    summarize: Callable[[Any, Any], str]
    phases: tuple[str, ...]
    next_methods: tuple[str, ...]
    phase_next: dict[str, tuple[str, ...]] = field(default_factory=dict)
    # Input fields that must be lists; a bare string is wrapped during normalisation
    list_fields: tuple[str, ...] = ()
    mode: str = "json"

    def options(self, **overrides: Any) -> GenerationOptions:
        return GenerationOptions(
            temperature=self.temperature,
            mode=self.mode,
            schema_name=self.output_schema.__name__,
            schema_description=f"Structured result of {self.method} thinking",
            **overrides,
        )

    def recommend_next(self, phase: Optional[str] = None) -> list[str]:
        extra = self.phase_next.get(phase, ()) if phase else ()
        return list(dict.fromkeys([*self.next_methods, *extra]))


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


# =============================================================================
# CONFIDENCE
# =============================================================================


def _abduction_confidence(out: AbductionOutput) -> float:
    top = out.hypotheses[0] if out.hypotheses else None
    explanation_bonus = min(len(top.explanation) / 200, 0.2) if top else 0.0
    reasoning_bonus = 0.1 if any(w in out.reasoning.lower() for w in ("logic", "evidence")) else 0.0
    plausibility_bonus = top.plausibility * 0.1 if top else 0.0
    return out.confidence + explanation_bonus + reasoning_bonus + plausibility_bonus


def _critical_confidence(out: CriticalOutput) -> float:
    q, sw = out.questioning_results, out.strengths_weaknesses
    completeness = (
        len(sw.strengths) + len(sw.weaknesses)
        + len(q.assumption_challenges) + len(q.logical_gaps)
    ) / 4
    return (
        out.confidence
        + min(completeness * 0.1, 0.2)
        + min(len(out.recommendations) * 0.05, 0.1)
    )


def _debate_confidence(out: DebateOutput) -> float:
    balance = min(len(out.pro_arguments), len(out.con_arguments)) * 0.1
    strength = (
        _mean([a.strength for a in out.pro_arguments])
        + _mean([a.strength for a in out.con_arguments])
    ) / 2
    disputes = min(len(out.key_disputes) * 0.05, 0.15)
    return balance + strength * 0.5 + disputes


def _deductive_confidence(out: DeductiveOutput) -> float:
    check = out.validity_check
    return (
        out.confidence
        + (0.2 if check.is_valid else 0.0)
        + check.premise_reliability * 0.1
        + min(len(out.implications) * 0.05, 0.2)
    )


def _inductive_confidence(out: InductiveOutput) -> float:
    return _mean([g.confidence for g in out.generalizations]) + min(out.sample_size * 0.02, 0.3)


def _logical_confidence(out: LogicalOutput) -> float:
    evidence = sum(len(step.evidence) for step in out.reasoning)
    return (
        0.4
        + min(len(out.reasoning) * 0.1, 0.3)
        + min(evidence * 0.05, 0.2)
        + (0.3 if out.pyramid.supports else 0.0)
    )


def _mece_confidence(out: MECEOutput) -> float:
    penalty = max(0.0, 1 - (len(out.gaps) + len(out.overlaps)) * 0.1)
    return out.completeness_score * penalty


def _meta_confidence(out: MetaOutput) -> float:
    evaluation = out.process_evaluation
    quality = (len(evaluation.current_process) + len(evaluation.gaps)) / 2
    return (
        out.confidence
        + min(quality * 0.1, 0.2)
        + min(len(out.recommendations) * 0.05, 0.1)
        + min(len(out.alternative_approaches) * 0.05, 0.1)
    )


def _pac_confidence(out: PACOutput) -> float:
    validation = (
        (1 if out.assumptions_validity.is_valid else 0)
        + (1 if out.premise_validity.is_reliable else 0)
    ) / 2
    return (
        out.confidence * validation
        + min(len(out.assumptions_validity.test_methods) * 0.1, 0.2)
        + min(len(out.assumptions_validity.concerns) * 0.05, 0.1)
    )


# =============================================================================
# SUMMARIES
# =============================================================================


def _abduction_summary(inp: AbductionInput, out: AbductionOutput) -> str:
    top = out.hypotheses[0].explanation if out.hypotheses else "no hypothesis"
    return (
        f"Generated {len(out.hypotheses)} hypotheses for '{inp.surprising_fact}'. "
        f"Most plausible: {top} (confidence {_pct(out.confidence)})"
    )


def _critical_summary(inp: CriticalInput, out: CriticalOutput) -> str:
    q, sw = out.questioning_results, out.strengths_weaknesses
    return (
        f"Critically examined '{inp.claim}': {len(sw.strengths)} strengths, "
        f"{len(sw.weaknesses)} weaknesses, {len(q.assumption_challenges)} assumption challenges, "
        f"{len(q.logical_gaps)} logical gaps, {len(out.recommendations)} recommendations "
        f"(confidence {_pct(out.confidence)})"
    )


def _debate_summary(inp: DebateInput, out: DebateOutput) -> str:
    return (
        f"Debated '{inp.proposition}': {len(out.pro_arguments)} pro and "
        f"{len(out.con_arguments)} con arguments, {len(out.key_disputes)} key disputes. "
        f"Decision: {out.recommendation.decision} ({out.recommendation.reasoning})"
    )


def _deductive_summary(inp: DeductiveInput, out: DeductiveOutput) -> str:
    check = out.validity_check
    return (
        f"From '{inp.major_premise}' and '{inp.minor_premise}' derived '{out.conclusion}'. "
        f"Valid: {'yes' if check.is_valid else 'no'}, premise reliability "
        f"{_pct(check.premise_reliability)}, {len(out.implications)} implications"
    )


def _inductive_summary(inp: InductiveInput, out: InductiveOutput) -> str:
    patterns = "; ".join(g.pattern for g in out.generalizations[:3]) or "no pattern"
    return (
        f"Generalised from {len(inp.observations)} observations "
        f"(sample size {out.sample_size}): {patterns}"
    )


def _logical_summary(inp: LogicalInput, out: LogicalOutput) -> str:
    return (
        f"Reasoned about '{inp.question}' in {len(out.reasoning)} steps. "
        f"Conclusion: {out.conclusion}, supported by {len(out.pyramid.supports)} pillars"
    )


def _mece_summary(inp: MECEInput, out: MECEOutput) -> str:
    return (
        f"Classified {len(inp.items)} items for '{inp.purpose}' into {len(out.categories)} "
        f"categories by '{out.criteria}'. Gaps: {len(out.gaps)}, overlaps: {len(out.overlaps)} "
        f"(completeness {_pct(out.completeness_score)})"
    )


def _meta_summary(inp: MetaInput, out: MetaOutput) -> str:
    evaluation = out.process_evaluation
    return (
        f"Evaluated the process behind '{inp.current_thinking}': effectiveness "
        f"{_pct(evaluation.effectiveness)}, {len(evaluation.gaps)} gaps, "
        f"{len(out.recommendations)} improvements, {len(out.alternative_approaches)} alternatives"
    )


def _pac_summary(inp: PACInput, out: PACOutput) -> str:
    return (
        f"Decomposed '{inp.claim}'. Premise: {out.premise}; assumption: {out.assumption}; "
        f"conclusion: {out.conclusion}. Assumption valid: "
        f"{'yes' if out.assumptions_validity.is_valid else 'no'}, premise reliable: "
        f"{'yes' if out.premise_validity.is_reliable else 'no'}"
    )


# =============================================================================
# TABLE
# =============================================================================

METHOD_SPECS: dict[str, MethodSpec] = {
    "abduction": MethodSpec(
        method="abduction",
        description="Form explanatory hypotheses from a surprising fact",
        input_schema=AbductionInput,
        output_schema=AbductionOutput,
        build_prompts=prompts.abduction_prompts,
        temperature=0.4,
        confidence=_abduction_confidence,
        summarize=_abduction_summary,
        phases=("business_exploration", "debugging"),
        next_methods=("critical", "deductive"),
        phase_next={"business_exploration": ("inductive", "meta"), "debugging": ("logical",)},
    ),
    "logical": MethodSpec(
        method="logical",
        description="Build a pyramid-structured path from question to conclusion",
        input_schema=LogicalInput,
        output_schema=LogicalOutput,
        build_prompts=prompts.logical_prompts,
        temperature=0.3,
        confidence=_logical_confidence,
        summarize=_logical_summary,
        phases=("requirement_definition", "prioritization", "estimation_planning", "retrospective"),
        next_methods=("critical", "mece", "meta"),
        phase_next={"prioritization": ("mece",), "requirement_definition": ("mece",),
                    "estimation_planning": ("meta",)},
        list_fields=("information", "constraints"),
    ),
    "deductive": MethodSpec(
        method="deductive",
        description="Derive specific conclusions from general principles",
        input_schema=DeductiveInput,
        output_schema=DeductiveOutput,
        build_prompts=prompts.deductive_prompts,
        temperature=0.1,
        confidence=_deductive_confidence,
        summarize=_deductive_summary,
        phases=("architecture_design", "implementation", "debugging", "test_design"),
        next_methods=("logical", "critical"),
        phase_next={"architecture_design": ("mece",), "implementation": ("inductive",)},
    ),
    "inductive": MethodSpec(
        method="inductive",
        description="Generalise patterns from concrete observations",
        input_schema=InductiveInput,
        output_schema=InductiveOutput,
        build_prompts=prompts.inductive_prompts,
        temperature=0.3,
        confidence=_inductive_confidence,
        summarize=_inductive_summary,
        phases=("value_hypothesis", "experimentation", "debugging"),
        next_methods=("critical", "deductive", "abduction"),
        list_fields=("observations",),
    ),
    "mece": MethodSpec(
        method="mece",
        description="Classify items without gaps or overlaps",
        input_schema=MECEInput,
        output_schema=MECEOutput,
        build_prompts=prompts.mece_prompts,
        temperature=0.2,
        confidence=_mece_confidence,
        summarize=_mece_summary,
        phases=("prioritization", "refactoring", "code_review", "test_design"),
        next_methods=("logical", "critical"),
        phase_next={"prioritization": ("meta",), "test_design": ("deductive", "inductive"),
                    "code_review": ("deductive",)},
        list_fields=("items",),
    ),
    "pac": MethodSpec(
        method="pac",
        description="Split a claim into premise, assumption and conclusion",
        input_schema=PACInput,
        output_schema=PACOutput,
        build_prompts=prompts.pac_prompts,
        temperature=0.2,
        confidence=_pac_confidence,
        summarize=_pac_summary,
        phases=("hypothesis_breakdown", "retrospective"),
        next_methods=("critical", "deductive"),
        phase_next={"retrospective": ("meta", "logical"), "value_hypothesis": ("inductive",)},
    ),
    "meta": MethodSpec(
        method="meta",
        description="Evaluate and improve the thinking process itself",
        input_schema=MetaInput,
        output_schema=MetaOutput,
        build_prompts=prompts.meta_prompts,
        temperature=0.5,
        confidence=_meta_confidence,
        summarize=_meta_summary,
        phases=("retrospective", "estimation_planning", "decision_making"),
        next_methods=("critical", "logical"),
        phase_next={"decision_making": ("debate",)},
    ),
    "debate": MethodSpec(
        method="debate",
        description="Weigh arguments for and against a proposition",
        input_schema=DebateInput,
        output_schema=DebateOutput,
        build_prompts=prompts.debate_prompts,
        temperature=0.5,
        confidence=_debate_confidence,
        summarize=_debate_summary,
        phases=("decision_making", "architecture_design"),
        next_methods=("meta", "critical", "logical"),
        phase_next={"architecture_design": ("critical",), "decision_making": ("logical",)},
        list_fields=("positions",),
    ),
    "critical": MethodSpec(
        method="critical",
        description="Question premises, arguments and evidence systematically",
        input_schema=CriticalInput,
        output_schema=CriticalOutput,
        build_prompts=prompts.critical_prompts,
        temperature=0.4,
        confidence=_critical_confidence,
        summarize=_critical_summary,
        phases=("refactoring", "code_review", "decision_making"),
        next_methods=("logical", "mece"),
        phase_next={"refactoring": ("deductive",), "code_review": ("deductive",),
                    "decision_making": ("meta",)},
        list_fields=("evidence",),
    ),
}


def get_spec(method: str) -> MethodSpec:
    """Raises KeyError for an unknown method."""
    return METHOD_SPECS[method]

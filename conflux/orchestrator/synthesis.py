"""Result synthesis.

Pure functions from step results to the one IntegratedResult a run returns:

  synthesize_results             → normal end of a run (all or some steps done)
  create_schema_guidance_result  → a step needs corrected input to continue
  create_failure_result          → the run itself blew up
"""

from typing import Any, Callable, Optional

from conflux.constants import FAILED_STEP_PENALTY, MAX_NEXT_STEPS
from conflux.orchestrator.strategy import PHASE_NEXT_STEPS, OrchestrationStrategy
from conflux.schemas.thinking import IntegratedResult, RunStats, StepResult


def integrated_confidence(results: list[StepResult]) -> float:
    """Mean confidence of completed steps minus a fixed penalty per failed step, floored at 0."""
    done = [r.confidence for r in results if r.completed]
    failed = sum(1 for r in results if r.failed)
    mean = sum(done) / len(done) if done else 0.0
    return min(max(mean - FAILED_STEP_PENALTY * failed, 0.0), 1.0)


# =============================================================================
# ACTION ITEMS
# =============================================================================


def _strings(values: Any) -> list[str]:
    return [v for v in values or [] if isinstance(v, str) and v]


def _critical_items(out: dict) -> list[str]:
    challenges = _strings((out.get("questioning_results") or {}).get("assumption_challenges"))
    return [f"Verify assumptions: {', '.join(challenges)}"] if challenges else []


def _mece_items(out: dict) -> list[str]:
    names = _strings(c.get("name") for c in out.get("categories") or [] if isinstance(c, dict))
    return [f"Apply the MECE classification: {', '.join(names)}"] if names else []


def _logical_items(out: dict) -> list[str]:
    return [f"Validate the logical conclusion: {out['conclusion']}"] if out.get("conclusion") else []


def _abduction_items(out: dict) -> list[str]:
    items = []
    for hypothesis in out.get("hypotheses") or []:
        predictions = _strings(hypothesis.get("testable_predictions"))
        if predictions:
            items.append(f"Test hypothesis '{hypothesis.get('explanation', '')}': {', '.join(predictions)}")
    return items


def _deductive_items(out: dict) -> list[str]:
    return [f"Validate the deductive conclusion: {out['conclusion']}"] if out.get("conclusion") else []


def _inductive_items(out: dict) -> list[str]:
    patterns = _strings(g.get("pattern") for g in out.get("generalizations") or [] if isinstance(g, dict))
    return [f"Validate the inductive patterns: {', '.join(patterns)}"] if patterns else []


def _pac_items(out: dict) -> list[str]:
    return [f"Validate the PAC analysis: {out['conclusion']}"] if out.get("conclusion") else []


def _meta_items(out: dict) -> list[str]:
    improvements = _strings(r.get("improvement") for r in out.get("recommendations") or [] if isinstance(r, dict))
    return [f"Process improvements: {', '.join(improvements)}"] if improvements else []


def _debate_items(out: dict) -> list[str]:
    recommendation = out.get("recommendation") or {}
    if not recommendation.get("decision"):
        return []
    return [f"Act on the debate outcome: {recommendation['decision']} - {recommendation.get('reasoning', '')}"]


ACTION_ITEM_EXTRACTORS: dict[str, Callable[[dict], list[str]]] = {
    "critical": _critical_items,
    "mece": _mece_items,
    "logical": _logical_items,
    "abduction": _abduction_items,
    "deductive": _deductive_items,
    "inductive": _inductive_items,
    "pac": _pac_items,
    "meta": _meta_items,
    "debate": _debate_items,
}


def extract_action_items(results: list[StepResult]) -> list[str]:
    items = []
    for result in results:
        if not result.completed or not result.output:
            continue
        extractor = ACTION_ITEM_EXTRACTORS.get(result.method)
        if extractor:
            items.extend(extractor(result.output))
    return items


# =============================================================================
# NEXT STEPS
# =============================================================================


def recommend_next_steps(phase: str, results: list[StepResult]) -> list[str]:
    steps = [
        f"Consider additional analysis with {method} thinking"
        for result in results
        for method in result.next_recommendations
    ]
    steps.extend(PHASE_NEXT_STEPS.get(phase, ()))
    return list(dict.fromkeys(steps))[:MAX_NEXT_STEPS]


# =============================================================================
# RESULTS
# =============================================================================


def synthesize_results(
    phase: str,
    strategy: OrchestrationStrategy,
    results: list[StepResult],
    status: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> IntegratedResult:
    stats = RunStats.from_results(results)
    methods = ", ".join(dict.fromkeys([strategy.primary, *strategy.secondary]))
    header = (
        f"Ran {methods} thinking. "
        f"Succeeded: {stats.succeeded}, failed: {stats.failed}.\n\n"
    )
    insights = "".join(
        f"■ {r.method}: {r.reasoning}\n" for r in results if r.completed and r.reasoning
    )
    return IntegratedResult(
        phase=phase,
        primary_method=strategy.primary,
        secondary_methods=strategy.secondary,
        results=results,
        synthesis=header + insights,
        action_items=extract_action_items(results),
        confidence=integrated_confidence(results),
        next_steps=recommend_next_steps(phase, results),
        status=status or ("partially_failed" if stats.failed else "completed"),
        stats=stats,
        metadata=metadata or {},
    )


def _chain(results: list[StepResult], failed: str) -> str:
    executed = [r.method for r in results[:-1]]
    return " → ".join([*executed, failed])


def create_schema_guidance_result(
    phase: str,
    strategy: OrchestrationStrategy,
    failed_result: StepResult,
    results: list[StepResult],
    metadata: Optional[dict] = None,
) -> IntegratedResult:
    """Terminal result telling the caller how to fix its input and where to resume.

    `results` is every step run so far, ending with `failed_result`.
    """
    failed = failed_result.method
    chain = _chain(results, failed)
    return IntegratedResult(
        phase=phase,
        primary_method=strategy.primary,
        secondary_methods=strategy.secondary,
        results=results,
        synthesis=(
            f"The {failed} step of this multi-step run could not use its input. "
            f"Correct the input following the recommended schema and run the same "
            f"process again.\n\nExecuted steps: {chain}"
        ),
        action_items=[
            "Correct the input following the recommended schema",
            f"Re-run the same process with the corrected input, resuming from the "
            f"{failed} step (executed: {chain})",
        ],
        confidence=0.0,
        next_steps=[
            "Correct the input",
            f"Re-run the process (failed at: {failed})",
        ],
        status="aborted",
        stats=RunStats.from_results(results),
        metadata={
            **(metadata or {}),
            "failed_step": failed,
            "failed_index": len(results) - 1,
            "repair_guidance": failed_result.repair_guidance,
        },
    )


def create_failure_result(
    phase: str,
    strategy: OrchestrationStrategy,
    error: str,
    metadata: Optional[dict] = None,
) -> IntegratedResult:
    return IntegratedResult(
        phase=phase,
        primary_method=strategy.primary,
        secondary_methods=strategy.secondary,
        results=[],
        synthesis=f"An error occurred during orchestration: {error}",
        action_items=[
            "Investigate the cause of the error",
            "Re-check the input data",
            "Retry with individual thinking methods",
        ],
        confidence=0.0,
        next_steps=["Re-run after fixing the problem"],
        status="aborted",
        metadata={**(metadata or {}), "error": error},
    )

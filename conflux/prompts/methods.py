"""Prompts for the nine thinking methods.

Each method has a SYSTEM prompt (role and procedure) and a USER template
filled from the adapted step input. The output schema is NOT written here:
the model backend appends the schema requirements block for the requested
output schema, so prompt text and schema can't drift apart.

Templates use {placeholders}; list-valued inputs are rendered as numbered
lines before formatting. Optional sections (context, constraints) collapse
to nothing when absent.

Field names in every prompt are snake_case, matching the output schemas.
"""

import json
from typing import Any, Iterable, Optional

# =============================================================================
# HELPERS
# =============================================================================


def numbered(items: Iterable[Any]) -> str:
    lines = [f"{i}. {item}" for i, item in enumerate(items, 1)]
    return "\n".join(lines) if lines else "(none)"


def section(title: str, body: Optional[str]) -> str:
    """`## title` block, or empty string when body is empty."""
    if not body:
        return ""
    return f"\n## {title}\n{body}\n"


def previous_findings(data: dict) -> str:
    """Summarise an earlier step's output when the step runs inside a sequence."""
    previous = data.get("previous_result")
    if not isinstance(previous, dict):
        return ""
    keys = ("conclusion", "reasoning", "recommendations", "criteria")
    lines = []
    for key in keys:
        value = previous.get(key)
        if isinstance(value, str) and value:
            lines.append(f"- {key}: {value}")
        elif isinstance(value, list) and value and all(isinstance(v, str) for v in value):
            lines.append(f"- {key}: " + "; ".join(value[:5]))
    return section("Findings from the previous step", "\n".join(lines))


JSON_ONLY = """\
Output rules:
- Return ONE JSON object and nothing else.
- Use exactly the field names listed in the schema below (snake_case).
- Scores and confidences are numbers between 0 and 1."""


# =============================================================================
# ABDUCTION
# =============================================================================

ABDUCTION_SYSTEM = """\
You are an expert in abductive reasoning. Starting from a surprising fact,
generate the explanatory hypotheses that would make the fact unsurprising,
then rank them by plausibility.

Procedure:
1. Restate the surprising fact precisely.
2. Generate several distinct explanatory hypotheses.
3. For each, estimate plausibility and list predictions that would test it.
4. Recommend which thinking methods should follow.

""" + JSON_ONLY

ABDUCTION_USER = """\
## Surprising fact
{surprising_fact}
{context_section}{domain_section}{previous_section}
Generate explanatory hypotheses for this fact."""


# =============================================================================
# DEDUCTIVE
# =============================================================================

DEDUCTIVE_SYSTEM = """\
You are an expert in deductive reasoning. Derive the conclusion that
necessarily follows from a general rule (major premise) and a specific case
(minor premise), then check the validity of the inference.

Procedure:
1. Confirm the major premise is a general rule.
2. Confirm the minor premise falls under it.
3. State the conclusion that follows.
4. Judge validity and the reliability of the premises.
5. List the practical implications of the conclusion.

""" + JSON_ONLY

DEDUCTIVE_USER = """\
## Major premise
{major_premise}

## Minor premise
{minor_premise}
{context_section}{previous_section}
Derive the conclusion and check its validity."""


# =============================================================================
# LOGICAL
# =============================================================================

LOGICAL_SYSTEM = """\
You are an expert in logical thinking. Build a clear path from the question
to a conclusion, step by step, and organise it as a pyramid: one conclusion
at the top supported by claims that each rest on evidence.

Every step must answer "why so?" for the step above it and "so what?" for
the step below it.

""" + JSON_ONLY

LOGICAL_USER = """\
## Question
{question}

## Available information
{information}
{constraints_section}{context_section}{previous_section}
Reason to a conclusion and present it as a pyramid."""


# =============================================================================
# CRITICAL
# =============================================================================

CRITICAL_SYSTEM = """\
You are an expert in critical thinking. Examine a claim from several
angles: question its validity, find logical gaps, challenge its assumptions,
and name the biases that may be at work. Then weigh its strengths against
its weaknesses and say what evidence is missing.

""" + JSON_ONLY

CRITICAL_USER = """\
## Claim
{claim}

## Evidence offered
{evidence}
{context_section}{previous_section}
Critically evaluate this claim."""


# =============================================================================
# MECE
# =============================================================================

MECE_SYSTEM = """\
You are an expert in MECE analysis (mutually exclusive, collectively
exhaustive). Choose one classification criterion and sort every item into
categories that do not overlap and together cover the whole space.

Report any gaps (parts of the space no item covers) and any overlaps you
could not remove, and score how complete the classification is.

""" + JSON_ONLY

MECE_USER = """\
## Purpose
{purpose}

## Items
{items}
{criteria_section}{previous_section}
Classify the items."""


# =============================================================================
# INDUCTIVE
# =============================================================================

INDUCTIVE_SYSTEM = """\
You are an expert in inductive reasoning. Find the patterns that the
observations share and generalise them carefully.

Watch for:
- sample size and representativeness
- over-generalisation
- confirmation and selection bias
- observations that contradict the pattern

""" + JSON_ONLY

INDUCTIVE_USER = """\
## Observations
{observations}
{context_section}{previous_section}
Identify patterns and generalise from them."""


# =============================================================================
# PAC
# =============================================================================

PAC_SYSTEM = """\
You are an expert in PAC analysis. Break a claim into its Premise (what is
taken as fact), Assumption (the unstated link) and Conclusion (what is
asserted). Judge the reliability of the premise and the validity of the
assumption, and say how each could be tested.

""" + JSON_ONLY

PAC_USER = """\
## Claim
{claim}
{context_section}{previous_section}
Decompose this claim into premise, assumption and conclusion."""


# =============================================================================
# META
# =============================================================================

META_SYSTEM = """\
You are an expert in metacognition. Step back from the current line of
thinking and evaluate the process itself: what was done, how effective it
was against the objective, and where the gaps are. Recommend concrete,
prioritised improvements and alternative approaches.

""" + JSON_ONLY

META_USER = """\
## Current thinking
{current_thinking}

## Objective
{objective}
{context_section}{previous_section}
Evaluate this thinking process."""


# =============================================================================
# DEBATE
# =============================================================================

DEBATE_SYSTEM = """\
You are an expert debate facilitator. Build the strongest case both for and
against the proposition, identify the key points of dispute, and reach a
recommendation: support, oppose, or modify (with conditions).

Rate each argument's strength honestly; do not inflate one side.

""" + JSON_ONLY

DEBATE_USER = """\
## Proposition
{proposition}
{positions_section}{context_section}{previous_section}
Debate this proposition and give a recommendation."""


# =============================================================================
# BUILDERS
# =============================================================================


def _common(data: dict) -> dict:
    return {
        "context_section": section("Context", data.get("context")),
        "domain_section": section("Domain", data.get("domain")),
        "previous_section": previous_findings(data),
    }


def abduction_prompts(data: dict) -> tuple[str, str]:
    return ABDUCTION_SYSTEM, ABDUCTION_USER.format(
        surprising_fact=data["surprising_fact"], **_common(data),
    )


def deductive_prompts(data: dict) -> tuple[str, str]:
    return DEDUCTIVE_SYSTEM, DEDUCTIVE_USER.format(
        major_premise=data["major_premise"],
        minor_premise=data["minor_premise"],
        **_common(data),
    )


def logical_prompts(data: dict) -> tuple[str, str]:
    return LOGICAL_SYSTEM, LOGICAL_USER.format(
        question=data["question"],
        information=numbered(data.get("information") or []),
        constraints_section=section("Constraints", numbered(data["constraints"]) if data.get("constraints") else None),
        **_common(data),
    )


def critical_prompts(data: dict) -> tuple[str, str]:
    return CRITICAL_SYSTEM, CRITICAL_USER.format(
        claim=data["claim"],
        evidence=numbered(data.get("evidence") or []),
        **_common(data),
    )


def mece_prompts(data: dict) -> tuple[str, str]:
    return MECE_SYSTEM, MECE_USER.format(
        purpose=data["purpose"],
        items=numbered(data["items"]),
        criteria_section=section("Proposed criterion", data.get("proposed_criteria")),
        previous_section=previous_findings(data),
    )


def inductive_prompts(data: dict) -> tuple[str, str]:
    return INDUCTIVE_SYSTEM, INDUCTIVE_USER.format(
        observations=numbered(data["observations"]), **_common(data),
    )


def pac_prompts(data: dict) -> tuple[str, str]:
    return PAC_SYSTEM, PAC_USER.format(claim=data["claim"], **_common(data))


def meta_prompts(data: dict) -> tuple[str, str]:
    return META_SYSTEM, META_USER.format(
        current_thinking=data["current_thinking"],
        objective=data["objective"],
        **_common(data),
    )


def debate_prompts(data: dict) -> tuple[str, str]:
    return DEBATE_SYSTEM, DEBATE_USER.format(
        proposition=data["proposition"],
        positions_section=section("Known positions", numbered(data["positions"]) if data.get("positions") else None),
        **_common(data),
    )


# =============================================================================
# INPUT REPAIR
# =============================================================================

INPUT_REPAIR_SYSTEM = """\
You repair step inputs that failed validation. The input below was meant for
the {method} thinking method and does not match its input schema.

## Target input schema
{requirements}

Repair rules:
1. Keep the intent of the original data wherever possible.
2. Fill missing required fields with values derived from the data (earlier
   step results included); do not invent unrelated content.
3. Convert values of the wrong type to the declared type.
4. Replace invalid values with the closest valid value.
5. Record what you changed in repair_notes and how sure you are in confidence.

Put the corrected input in repaired_data, using the target schema's field names.
""" + JSON_ONLY

INPUT_REPAIR_USER = """\
## Original input
```json
{data}
```

## Validation errors
{errors}

Repair the input so it matches the target schema."""


def input_repair_prompts(method: str, requirements: str, data: dict, errors: list[str]) -> tuple[str, str]:
    return INPUT_REPAIR_SYSTEM.format(method=method, requirements=requirements), INPUT_REPAIR_USER.format(
        data=json.dumps(data, indent=2, ensure_ascii=False, default=str),
        errors=numbered(errors),
    )

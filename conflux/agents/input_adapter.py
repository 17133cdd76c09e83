"""Per-method input adaptation.

Callers hand the orchestrator a generic input (`problem`, `context`,
`evidence`, ...). Each method needs its own field names. This module maps
one to the other with a fixed table: every method has a rule, and each
field falls back in a fixed order ending in a placeholder prompt, e.g.

  surprising_fact := surprising_fact or problem or "<default>"

Keys a rule does not consume (previous_result, earlier step outputs, a
caller-provided domain) pass through unchanged.
"""

from typing import Any, Callable, Optional

# Keys that rules consume; everything else is passed through
CONSUMED_KEYS = frozenset({
    "problem", "context", "surprising_fact", "major_premise", "minor_premise",
    "question", "information", "claim", "proposition", "observations",
    "purpose", "items", "current_thinking", "objective", "evidence",
    "constraints", "proposed_criteria", "positions",
})

DEFAULTS = {
    "surprising_fact": "Describe the surprising fact to explain",
    "major_premise": "State the general rule",
    "minor_premise": "State the specific case",
    "question": "State the question to reason about",
    "claim": "State the claim to examine",
    "purpose": "State the purpose of the classification",
    "current_thinking": "Describe the current line of thinking",
    "objective": "State the objective",
    "proposition": "State the proposition to debate",
}


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """First truthy value among `keys`, else `default`."""
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return default


def _context_list(data: dict) -> list[str]:
    context = data.get("context")
    return [context] if context else []


def _others(data: dict) -> dict:
    return {k: v for k, v in data.items() if k not in CONSUMED_KEYS}


def _abduction(data: dict, phase: Optional[str]) -> dict:
    return {
        "surprising_fact": _first(data, "surprising_fact", "problem", default=DEFAULTS["surprising_fact"]),
        "context": data.get("context") or "",
        "domain": phase,
    }


def _deductive(data: dict, phase: Optional[str]) -> dict:
    return {
        "major_premise": _first(data, "major_premise", "problem", default=DEFAULTS["major_premise"]),
        "minor_premise": _first(data, "minor_premise", "context", default=DEFAULTS["minor_premise"]),
        "domain": phase,
    }


def _logical(data: dict, phase: Optional[str]) -> dict:
    return {
        "question": _first(data, "question", "problem", default=DEFAULTS["question"]),
        "information": _first(data, "information", "evidence", default=_context_list(data)),
        "constraints": data.get("constraints") or [],
        "context": data.get("context") or "",
        "domain": phase,
    }


def _critical(data: dict, phase: Optional[str]) -> dict:
    return {
        "claim": _first(data, "claim", "problem", default=DEFAULTS["claim"]),
        "evidence": data.get("evidence") or _context_list(data),
        "context": data.get("context") or "",
        "domain": phase,
    }


def _mece(data: dict, phase: Optional[str]) -> dict:
    return {
        "purpose": _first(data, "purpose", "problem", default=DEFAULTS["purpose"]),
        "items": data.get("items") or _context_list(data),
        "proposed_criteria": data.get("proposed_criteria") or None,
    }


def _inductive(data: dict, phase: Optional[str]) -> dict:
    return {
        "observations": data.get("observations") or _context_list(data),
        "context": data.get("problem") or data.get("context") or "",
        "domain": phase,
    }


def _pac(data: dict, phase: Optional[str]) -> dict:
    return {
        "claim": _first(data, "claim", "problem", default=DEFAULTS["claim"]),
        "context": data.get("context") or "",
        "domain": phase,
    }


def _meta(data: dict, phase: Optional[str]) -> dict:
    return {
        "current_thinking": _first(data, "current_thinking", "problem", default=DEFAULTS["current_thinking"]),
        "objective": _first(data, "objective", "context", default=DEFAULTS["objective"]),
        "context": data.get("context") or "",
    }


def _debate(data: dict, phase: Optional[str]) -> dict:
    return {
        "proposition": _first(data, "proposition", "problem", default=DEFAULTS["proposition"]),
        "positions": data.get("positions") or [],
        "context": data.get("context") or "",
        "domain": phase,
    }


ADAPTERS: dict[str, Callable[[dict, Optional[str]], dict]] = {
    "abduction": _abduction,
    "deductive": _deductive,
    "logical": _logical,
    "critical": _critical,
    "mece": _mece,
    "inductive": _inductive,
    "pac": _pac,
    "meta": _meta,
    "debate": _debate,
}


def convert_input_for_method(method: str, data: dict, phase: Optional[str] = None) -> dict:
    """Map a generic input onto `method`'s field names.

    Deterministic and total over the nine methods. A caller-provided
    `domain` (or any other unconsumed key) wins over the phase default.

    Raises:
        KeyError: `method` is not a known thinking method.
    """
    mapped = ADAPTERS[method](data, phase)
    if mapped.get("domain") is None:
        mapped.pop("domain", None)
    return {**mapped, **_others(data)}


def convert_input_for_methods(methods: list[str], data: dict, phase: Optional[str] = None) -> dict[str, dict]:
    return {method: convert_input_for_method(method, data, phase) for method in methods}

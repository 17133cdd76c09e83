"""Declarative schema examples.

One hand-written example payload per known schema, keyed by schema name.
Used for:
  - prompt repair (restating the required shape after a schema violation)
  - schema guidance (telling a caller what a step's input should look like)
  - the offline mock backend

Nothing here introspects a validator beyond the public JSON schema.
"""

import json
from typing import Any, Optional, Type, Union

from pydantic import BaseModel

SchemaRef = Union[Type[BaseModel], str]


EXAMPLES: dict[str, dict[str, Any]] = {
    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------
    "AbductionInput": {
        "surprising_fact": "Checkout latency doubled overnight with no deploy",
        "context": "Payments service, p95 latency dashboard",
    },
    "DeductiveInput": {
        "major_premise": "Every public endpoint must require authentication",
        "minor_premise": "/export is a public endpoint",
    },
    "LogicalInput": {
        "question": "Should the reporting job move to a queue?",
        "information": ["The job blocks web workers for 40s", "Queue infra already exists"],
        "constraints": ["No new services this quarter"],
    },
    "CriticalInput": {
        "claim": "Rewriting the parser will fix the memory leak",
        "evidence": ["Heap dumps show parser objects retained"],
    },
    "MECEInput": {
        "purpose": "Group open incidents by root cause",
        "items": ["DNS timeout", "Expired certificate", "Disk full", "Bad config push"],
    },
    "InductiveInput": {
        "observations": [
            "Outage 1 followed a config push",
            "Outage 2 followed a config push",
            "Outage 3 followed a dependency upgrade",
        ],
    },
    "PACInput": {
        "claim": "Users churn because onboarding is too long",
    },
    "MetaInput": {
        "current_thinking": "We picked the cache layer first because it was familiar",
        "objective": "Reduce p95 latency below 200ms",
    },
    "DebateInput": {
        "proposition": "We should adopt a monorepo",
        "context": "Twelve services, four teams",
    },
    # -------------------------------------------------------------------------
    # Outputs
    # -------------------------------------------------------------------------
    "AbductionOutput": {
        "hypotheses": [
            {
                "explanation": "A nightly batch job now overlaps peak traffic",
                "plausibility": 0.7,
                "testable_predictions": ["Latency spikes align with the batch schedule"],
            }
        ],
        "recommended_next": ["deductive", "critical"],
        "confidence": 0.7,
        "reasoning": "The timing pattern points to a scheduled workload",
    },
    "DeductiveOutput": {
        "conclusion": "/export must require authentication",
        "validity_check": {
            "is_valid": True,
            "reasoning": "Modus ponens from a universal rule",
            "premise_reliability": 0.9,
        },
        "implications": ["Add an auth guard to /export"],
        "confidence": 0.8,
        "reasoning": "The minor premise places /export under the rule",
    },
    "LogicalOutput": {
        "conclusion": "Move the reporting job to the existing queue",
        "reasoning": [
            {
                "step": "Identify the bottleneck",
                "evidence": ["The job blocks web workers for 40s"],
                "inference": "Web capacity is lost to batch work",
            }
        ],
        "pyramid": {
            "conclusion": "Move the reporting job to the existing queue",
            "supports": [
                {"claim": "It frees web workers", "evidence": ["40s blocking per run"]},
            ],
        },
        "confidence": 0.75,
    },
    "CriticalOutput": {
        "questioning_results": {
            "question_validity": ["Is the leak confined to the parser?"],
            "logical_gaps": ["Retention does not prove the parser allocates the objects"],
            "assumption_challenges": ["Assumes a rewrite will not reintroduce retention"],
            "biases": ["Recency bias toward the last module changed"],
        },
        "strengths_weaknesses": {
            "strengths": ["Heap dumps are direct evidence"],
            "weaknesses": ["No allocation profile"],
            "missing_evidence": ["Allocation site traces"],
        },
        "recommendations": ["Profile allocations before rewriting"],
        "confidence": 0.7,
        "reasoning": "The claim outruns its evidence",
    },
    "MECEOutput": {
        "criteria": "Root cause layer",
        "categories": [
            {"name": "Network", "items": ["DNS timeout"], "coverage": "Resolution and transport"},
            {"name": "Security", "items": ["Expired certificate"], "coverage": "Credentials and TLS"},
            {"name": "Capacity", "items": ["Disk full"], "coverage": "Resource exhaustion"},
            {"name": "Change", "items": ["Bad config push"], "coverage": "Human-initiated changes"},
        ],
        "gaps": [],
        "overlaps": [],
        "completeness_score": 0.9,
        "reasoning": "Each incident maps to exactly one layer",
    },
    "InductiveOutput": {
        "generalizations": [
            {
                "pattern": "Most outages follow a change event",
                "confidence": 0.6,
                "supporting_evidence": ["Outage 1", "Outage 2", "Outage 3"],
                "exceptions": [],
            }
        ],
        "sample_size": 3,
        "bias_warnings": ["Small sample"],
        "confidence": 0.6,
        "reasoning": "All three observations share a preceding change",
    },
    "PACOutput": {
        "premise": "Churned users abandoned onboarding",
        "assumption": "Onboarding length caused the abandonment",
        "conclusion": "Shortening onboarding will reduce churn",
        "assumptions_validity": {
            "is_valid": False,
            "concerns": ["Correlation is not causation"],
            "test_methods": ["A/B test a shorter onboarding flow"],
        },
        "premise_validity": {
            "is_reliable": True,
            "biases": ["Survivorship bias"],
            "verification_needed": ["Funnel analytics"],
        },
        "confidence": 0.6,
        "reasoning": "The assumption is the weakest link",
    },
    "MetaOutput": {
        "process_evaluation": {
            "current_process": ["Picked a familiar solution first"],
            "effectiveness": 0.5,
            "gaps": ["No measurement of where latency is spent"],
        },
        "recommendations": [
            {"aspect": "Evidence", "improvement": "Trace a slow request end to end", "priority": "high"},
        ],
        "alternative_approaches": ["Profile before choosing a layer"],
        "confidence": 0.65,
        "reasoning": "The choice was driven by familiarity rather than data",
    },
    "DebateOutput": {
        "proposition": "We should adopt a monorepo",
        "pro_arguments": [
            {"argument": "Atomic cross-service changes", "evidence": ["Frequent coordinated releases"], "strength": 0.7},
        ],
        "con_arguments": [
            {"argument": "CI times grow with repo size", "evidence": ["Current CI is 20 minutes"], "strength": 0.6},
        ],
        "key_disputes": ["Tooling cost versus coordination cost"],
        "recommendation": {
            "decision": "modify",
            "reasoning": "Adopt it only with build caching in place",
            "conditions": ["Remote build cache available"],
        },
        "confidence": 0.65,
        "reasoning": "Benefits depend on tooling investment",
    },
    # -------------------------------------------------------------------------
    # Infrastructure
    # -------------------------------------------------------------------------
    "HealthCheckOutput": {"status": "OK"},
    "InputRepairOutput": {
        "repaired_data": {
            "major_premise": "Every public endpoint must require authentication",
            "minor_premise": "/export is a public endpoint",
        },
        "repair_notes": "Split the single 'premises' string into major_premise and minor_premise",
        "confidence": 0.8,
    },
}


def schema_name(schema: SchemaRef) -> str:
    return schema if isinstance(schema, str) else schema.__name__


def example_for(schema: SchemaRef) -> Optional[dict[str, Any]]:
    """Example payload for a schema (class or name), or None if unknown."""
    return EXAMPLES.get(schema_name(schema))


def _describe_property(prop: dict[str, Any]) -> str:
    if "enum" in prop:
        return "one of " + ", ".join(json.dumps(v) for v in prop["enum"])
    if "anyOf" in prop:
        return " or ".join(_describe_property(p) for p in prop["anyOf"])
    kind = prop.get("type", "object")
    if kind == "array":
        item = prop.get("items", {})
        return f"array of {_describe_property(item)}" if item else "array"
    if "$ref" in prop:
        return "object"
    bounds = []
    if "minimum" in prop:
        bounds.append(f">= {prop['minimum']}")
    if "maximum" in prop:
        bounds.append(f"<= {prop['maximum']}")
    return kind + (f" ({', '.join(bounds)})" if bounds else "")


def schema_requirements(schema: Type[BaseModel]) -> str:
    """Human-readable restatement of a schema for prompts.

    Lists the required top-level fields with their types, then the
    registered example (if any) as JSON.
    """
    json_schema = schema.model_json_schema()
    required = json_schema.get("required", [])
    properties = json_schema.get("properties", {})

    lines = [f"Required schema: {schema.__name__}", "Required fields:"]
    for name in required:
        lines.append(f"  - {name}: {_describe_property(properties.get(name, {}))}")
    optional = [name for name in properties if name not in required]
    if optional:
        lines.append("Optional fields: " + ", ".join(optional))

    example = example_for(schema)
    if example is not None:
        lines.append("Example:")
        lines.append(json.dumps(example, indent=2, ensure_ascii=False))
    return "\n".join(lines)

"""Pydantic schemas for structured data validation.

This package contains:
- thinking.py: step and orchestration results, method/phase enums
- methods.py: input and output schemas for each thinking method
- examples.py: declarative example payloads keyed by schema name
- api.py: request/response schemas for the REST API

Every model output is validated against its output schema BEFORE a step is
marked completed.
"""

from conflux.schemas.thinking import (
    DEVELOPMENT_PHASES,
    THINKING_METHODS,
    DevelopmentPhase,
    IntegratedResult,
    RunStats,
    StepResult,
    StepStatus,
    ThinkingMethod,
)

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
    InputRepairOutput,
    PACOutput,
)

from conflux.schemas.examples import example_for, schema_requirements

__all__ = [
    # Results
    "DEVELOPMENT_PHASES",
    "THINKING_METHODS",
    "DevelopmentPhase",
    "IntegratedResult",
    "RunStats",
    "StepResult",
    "StepStatus",
    "ThinkingMethod",
    # Methods
    "AbductionInput",
    "AbductionOutput",
    "CriticalInput",
    "CriticalOutput",
    "DebateInput",
    "DebateOutput",
    "DeductiveInput",
    "DeductiveOutput",
    "InductiveInput",
    "InductiveOutput",
    "LogicalInput",
    "LogicalOutput",
    "MECEInput",
    "MECEOutput",
    "MetaInput",
    "MetaOutput",
    "PACInput",
    "InputRepairOutput",
    "PACOutput",
    # Examples
    "example_for",
    "schema_requirements",
]

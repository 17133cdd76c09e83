"""Schema validation.

The generator only needs something with

    validate(schema, data) -> Success(model) | Failure(SCHEMA_VIOLATION, errors=[...])

so any engine that can report field-level violations can be dropped in.
`PydanticValidator` is the one used everywhere by default.
"""

from typing import Any, Protocol, Type

from pydantic import BaseModel, ValidationError

from conflux.errors import ErrorKind
from conflux.llm.outcome import Failure, GenerationOutcome, Success, ValidationIssue


class SchemaValidator(Protocol):
    def validate(self, schema: Type[BaseModel], data: Any) -> GenerationOutcome: ...


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def issues_from_pydantic(error: ValidationError) -> tuple[ValidationIssue, ...]:
    """Convert a pydantic ValidationError into validator-agnostic issues."""
    return tuple(
        ValidationIssue(
            field=_field_path(err.get("loc", ())),
            message=err.get("msg", "invalid"),
            value=err.get("input"),
        )
        for err in error.errors()
    )


def describe_issues(issues: tuple[ValidationIssue, ...]) -> str:
    return ", ".join(issue.describe() for issue in issues)


class PydanticValidator:
    """Validates raw dicts against pydantic models."""

    def validate(self, schema: Type[BaseModel], data: Any) -> GenerationOutcome:
        if isinstance(data, schema):
            return Success(data)
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            return Success(schema.model_validate(data))
        except ValidationError as e:
            issues = issues_from_pydantic(e)
            return Failure(
                kind=ErrorKind.SCHEMA_VIOLATION,
                message=f"Schema validation failed: {describe_issues(issues)}",
                errors=issues,
            )

"""Typed generation outcomes.

Every attempt returns a value instead of raising:

  Success(value)    schema-valid data
  Failure(kind)     a classified error, see errors.ErrorKind

Small combinators keep the composition visible at each call site:

  outcome = and_then(raw, lambda data: validator.validate(schema, data))
  outcome = await or_else(outcome, lambda failure: fallback.run(...))
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Generic, Optional, TypeVar, Union

from conflux.constants import TRANSIENT_ERROR_MARKERS
from conflux.errors import ErrorKind, GenerationError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ValidationIssue:
    """One field-level schema violation, independent of the validator used."""
    field: str
    message: str
    value: Any = None

    def describe(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    provider: Optional[str] = None
    attempts: int = 1

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    errors: tuple[ValidationIssue, ...] = ()
    provider: Optional[str] = None
    attempts: int = 0
    # Failures this one aggregates (fallback hops, the exhausted primary)
    causes: tuple["Failure", ...] = field(default_factory=tuple)

    ok: ClassVar[bool] = False

    @property
    def is_transient(self) -> bool:
        """Rate-limit or timeout transport failure."""
        if self.kind is not ErrorKind.TRANSPORT:
            return False
        text = self.message.lower()
        return any(marker in text for marker in TRANSIENT_ERROR_MARKERS)

    def summary(self) -> str:
        return f"{self.kind.value}: {self.message}"


GenerationOutcome = Union[Success[T], Failure]


def and_then(
    outcome: GenerationOutcome,
    fn: Callable[[Any], GenerationOutcome],
) -> GenerationOutcome:
    """Feed a success into `fn`; pass failures through untouched."""
    if outcome.ok:
        return fn(outcome.value)
    return outcome


async def or_else(
    outcome: GenerationOutcome,
    fn: Callable[[Failure], Awaitable[GenerationOutcome]],
) -> GenerationOutcome:
    """Recover from a failure with `fn`; pass successes through untouched."""
    if outcome.ok:
        return outcome
    return await fn(outcome)


def unwrap(outcome: GenerationOutcome) -> Any:
    """Return the value of a success, raise GenerationError for a failure."""
    if outcome.ok:
        return outcome.value
    raise GenerationError(outcome)

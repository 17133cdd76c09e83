"""Error taxonomy.

Generation failures travel as `Failure` values (see outcome.py); the
exceptions here are raised only at the edges:

  ConfigurationError   missing/invalid provider setup, always fatal
  GenerationError      terminal Failure from the throwing generation variant
  SequenceAborted      aborted orchestration run, from raise_for_status()
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from conflux.llm.outcome import Failure


class ErrorKind(str, Enum):
    SCHEMA_VIOLATION = "schema_violation"
    TRANSPORT = "transport_error"
    CONFIGURATION = "configuration_error"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    SEQUENCE_ABORTED = "sequence_aborted"


class ConfluxError(Exception):
    """Base class for every error raised by conflux."""

    kind: ErrorKind


class ConfigurationError(ConfluxError):
    """Provider setup is missing or invalid. No retry can fix it."""

    kind = ErrorKind.CONFIGURATION


class ProviderNotFoundError(ConfigurationError):
    """Neither the requested provider nor a default is registered."""

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.name = name


class GenerationError(ConfluxError):
    """Raised when structured generation ends in a Failure."""

    def __init__(self, failure: "Failure"):
        super().__init__(failure.message)
        self.failure = failure
        self.kind = failure.kind


class SequenceAborted(ConfluxError):
    """An orchestration run stopped after an unrecoverable step."""

    kind = ErrorKind.SEQUENCE_ABORTED

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result

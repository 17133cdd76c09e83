"""Structured-output generation package.

  from conflux.llm import StructuredOutputGenerator, build_registry_from_env

  registry = build_registry_from_env()
  generator = StructuredOutputGenerator(registry)
  outcome = await generator.generate_outcome(CriticalOutput, system, user)

Architecture:
  registry.py   → named providers, default resolution
  backends.py   → LangChain chat model / mock backends (the only network I/O)
  parser.py     → JSON extraction from raw model text
  validation.py → pluggable schema validation, field-level issues
  recovery.py   → pure retry decision (prompt repair, temperature decay)
  fallback.py   → one conservative attempt on each other provider
  generator.py  → attempt loop composing the above
  outcome.py    → Success / Failure values and combinators

The error taxonomy lives in conflux/errors.py so schemas can raise it
without importing this package.
"""

from conflux.llm.backends import ChatModelBackend, MockBackend, ModelBackend
from conflux.errors import (
    ConfigurationError,
    ConfluxError,
    ErrorKind,
    GenerationError,
    ProviderNotFoundError,
    SequenceAborted,
)
from conflux.llm.fallback import FallbackChain
from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.outcome import (
    Failure,
    GenerationOutcome,
    Success,
    ValidationIssue,
    and_then,
    or_else,
    unwrap,
)
from conflux.llm.parser import JSONExtractionError, extract_json
from conflux.llm.recovery import (
    AttemptState,
    Escalate,
    RetrySameProvider,
    decide_next_action,
)
from conflux.llm.registry import ProviderRegistry, ResolvedProvider, build_registry_from_env
from conflux.llm.types import GenerationOptions, GenerationRequest, ModelCall, ProviderConfig
from conflux.llm.validation import PydanticValidator, SchemaValidator

__all__ = [
    # Backends
    "ChatModelBackend",
    "MockBackend",
    "ModelBackend",
    # Errors
    "ConfigurationError",
    "ConfluxError",
    "ErrorKind",
    "GenerationError",
    "ProviderNotFoundError",
    "SequenceAborted",
    "JSONExtractionError",
    # Generation
    "FallbackChain",
    "StructuredOutputGenerator",
    "GenerationOptions",
    "GenerationRequest",
    "ModelCall",
    # Outcomes
    "Failure",
    "GenerationOutcome",
    "Success",
    "ValidationIssue",
    "and_then",
    "or_else",
    "unwrap",
    # Recovery
    "AttemptState",
    "Escalate",
    "RetrySameProvider",
    "decide_next_action",
    # Registry
    "ProviderConfig",
    "ProviderRegistry",
    "ResolvedProvider",
    "build_registry_from_env",
    # Parsing / validation
    "extract_json",
    "PydanticValidator",
    "SchemaValidator",
]

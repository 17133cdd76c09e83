"""Request and option models for structured generation."""

from dataclasses import dataclass, field
from typing import Any, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from conflux.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODE,
    DEFAULT_TEMPERATURE,
)


class GenerationOptions(BaseModel):
    """Per-request generation knobs.

    Immutable: recovery and fallback derive new options with
    `options.model_copy(update={...})` instead of mutating them.

    `mode` ("auto", "json", "tool-call") is passed through to the backend
    untouched. `timeout_seconds=None` means "use the generator's default".
    """
    model_config = ConfigDict(frozen=True)

    temperature: float = DEFAULT_TEMPERATURE
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    enable_auto_recovery: bool = True
    mode: str = DEFAULT_MODE
    schema_name: Optional[str] = None
    schema_description: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


@dataclass(frozen=True)
class GenerationRequest:
    """Everything one attempt chain needs. Never mutated between attempts."""
    schema: Type[BaseModel]
    system_prompt: str
    user_prompt: str
    provider_name: Optional[str] = None
    options: GenerationOptions = field(default_factory=GenerationOptions)


@dataclass(frozen=True)
class ModelCall:
    """The payload handed to a backend for a single provider call."""
    schema: Type[BaseModel]
    system: str
    prompt: str
    temperature: float
    mode: str = DEFAULT_MODE
    schema_name: Optional[str] = None
    schema_description: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS

    @property
    def name(self) -> str:
        return self.schema_name or self.schema.__name__

    def describe(self) -> dict[str, Any]:
        """Loggable summary; prompts are reported by length only."""
        return {
            "schema": self.name,
            "temperature": round(self.temperature, 3),
            "mode": self.mode,
            "system_len": len(self.system),
            "prompt_len": len(self.prompt),
        }


@dataclass(frozen=True)
class ProviderConfig:
    """One named backend: `{type, api_key?, base_url?, model?, default_params?}`."""
    type: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    default_params: dict[str, Any] = field(default_factory=dict)

    def redacted(self) -> dict[str, Any]:
        """Loggable view with the API key masked."""
        return {
            "type": self.type,
            "model": self.model,
            "base_url": self.base_url,
            "api_key": "***" if self.api_key else None,
        }

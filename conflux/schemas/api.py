"""Pydantic schemas for API requests/responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from conflux.schemas.thinking import DevelopmentPhase, ThinkingMethod


class HealthCheckOutput(BaseModel):
    """What a provider must return for a health check."""
    status: str


class ThinkRequest(BaseModel):
    """Request body for running a method, a phase, or the golden pattern."""
    input: dict[str, Any] = Field(default_factory=dict, description="Problem statement and context")
    provider_name: Optional[str] = Field(None, description="Registered provider to use")


class PhaseThinkRequest(ThinkRequest):
    """Request body for running a single method in the context of a phase."""
    phase: Optional[DevelopmentPhase] = None


class CustomStrategyRequest(ThinkRequest):
    phase: DevelopmentPhase
    primary: ThinkingMethod
    secondary: list[ThinkingMethod] = Field(default_factory=list)
    sequence: Optional[list[ThinkingMethod]] = None

    @field_validator("sequence")
    @classmethod
    def sequence_not_empty(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is not None and not v:
            raise ValueError("sequence must name at least one method (or be omitted)")
        return v


class StrategyResponse(BaseModel):
    phase: DevelopmentPhase
    primary: ThinkingMethod
    secondary: list[ThinkingMethod]
    sequence: Optional[list[ThinkingMethod]] = None
    recommended_methods: list[ThinkingMethod] = []


class MethodInfo(BaseModel):
    method: ThinkingMethod
    description: str
    phases: list[DevelopmentPhase]
    input_example: dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str
    providers: list[str]
    default_provider: Optional[str] = None
    # provider name -> passed the health check; only with ?check=true
    checks: Optional[dict[str, bool]] = None

"""Structured output generator.

One attempt = invoke the provider, then validate the raw payload:

  invoke → Failure(TRANSPORT)          provider raised, timed out, or
                                       returned text with no JSON
  validate → Failure(SCHEMA_VIOLATION) payload does not match the schema
           → Success(model)

Attempts are chained on one provider by the recovery policy
(recovery.py); once that escalates, the fallback chain (fallback.py) takes
over. The two never call each other.

Usage:
    generator = StructuredOutputGenerator(registry)

    outcome = await generator.generate(GenerationRequest(
        schema=CriticalOutput, system_prompt=system, user_prompt=user,
    ))
    if outcome.ok:
        result = outcome.value

    # or the raising variant
    result = await generator.generate_structured_output(CriticalOutput, system, user)
"""

import asyncio
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel

from conflux.constants import DEFAULT_CALL_TIMEOUT
from conflux.errors import ConfigurationError, ErrorKind
from conflux.llm.fallback import FallbackChain
from conflux.llm.outcome import Failure, GenerationOutcome, Success, and_then, or_else, unwrap
from conflux.llm.recovery import AttemptState, Escalate, decide_next_action
from conflux.llm.registry import ProviderRegistry, ResolvedProvider
from conflux.llm.types import GenerationOptions, GenerationRequest, ModelCall
from conflux.llm.validation import PydanticValidator, SchemaValidator
from conflux.schemas.api import HealthCheckOutput
from conflux.utils.logging import log, get_logger

MODULE = "llm.generator"
logger = get_logger()

T = TypeVar("T", bound=BaseModel)

Sleep = Callable[[float], Awaitable[Any]]

HEALTH_SYSTEM = "You are a health check endpoint. Reply with the requested JSON."
HEALTH_USER = 'Return {"status": "OK"}.'


class StructuredOutputGenerator:
    def __init__(
        self,
        registry: ProviderRegistry,
        validator: Optional[SchemaValidator] = None,
        sleep: Sleep = asyncio.sleep,
        default_timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        self.registry = registry
        self.validator = validator or PydanticValidator()
        self._sleep = sleep
        self.default_timeout = default_timeout
        self.fallback = FallbackChain(registry, self.run_attempts)

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        """Run the full attempt chain plus fallback. Never raises for model failures.

        Raises:
            ConfigurationError: the requested provider (or a default) is not
                registered. No retry can fix that.
        """
        provider = self.registry.resolve(request.provider_name)
        outcome = await self.run_attempts(provider, request, request.options)
        return await or_else(
            outcome,
            lambda failure: self.fallback.run(request, provider.name, failure),
        )

    async def generate_outcome(
        self,
        schema: Type[T],
        system_prompt: str,
        user_prompt: str,
        provider_name: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationOutcome:
        return await self.generate(GenerationRequest(
            schema=schema,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            provider_name=provider_name,
            options=options or GenerationOptions(),
        ))

    async def generate_structured_output(
        self,
        schema: Type[T],
        system_prompt: str,
        user_prompt: str,
        provider_name: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> T:
        """Like generate_outcome, but raises GenerationError on a terminal failure."""
        outcome = await self.generate_outcome(
            schema, system_prompt, user_prompt, provider_name, options,
        )
        return unwrap(outcome)

    async def run_attempts(
        self,
        provider: ResolvedProvider,
        request: GenerationRequest,
        options: GenerationOptions,
    ) -> GenerationOutcome:
        """Retry on one provider until success or the recovery policy escalates."""
        system_prompt = request.system_prompt
        attempt = 1
        while True:
            outcome = await self.attempt(provider, request, system_prompt, options)
            if outcome.ok:
                log.info(logger, MODULE, "generate_done", "Structured output generated",
                         provider=provider.name, schema=request.schema.__name__,
                         attempts=attempt)
                return replace(outcome, attempts=attempt)

            log.warning(logger, MODULE, "attempt_failed", "Generation attempt failed",
                        provider=provider.name, schema=request.schema.__name__,
                        attempt=attempt, max_retries=options.max_retries,
                        kind=outcome.kind.value, error=outcome.message)

            action = decide_next_action(outcome, AttemptState(
                attempt=attempt,
                base_system_prompt=request.system_prompt,
                system_prompt=system_prompt,
                options=options,
                schema=request.schema,
            ))
            if isinstance(action, Escalate):
                log.info(logger, "llm.recovery", "recovery_escalate", "Escalating",
                         provider=provider.name, attempt=attempt, reason=action.reason)
                return replace(outcome, provider=provider.name, attempts=attempt)

            log.info(logger, "llm.recovery", "recovery_retry", "Retrying on same provider",
                     provider=provider.name, attempt=attempt, reason=action.reason,
                     delay=action.delay, temperature=action.options.temperature)
            await self._sleep(action.delay)
            system_prompt, options = action.system_prompt, action.options
            attempt += 1

    async def attempt(
        self,
        provider: ResolvedProvider,
        request: GenerationRequest,
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationOutcome:
        """Exactly one provider call followed by validation."""
        call = ModelCall(
            schema=request.schema,
            system=system_prompt,
            prompt=request.user_prompt,
            temperature=options.temperature,
            mode=options.mode,
            schema_name=options.schema_name,
            schema_description=options.schema_description,
            max_tokens=options.max_tokens,
        )
        raw = await self._invoke(provider, call, options.timeout_seconds or self.default_timeout)
        outcome = and_then(raw, lambda data: self.validator.validate(request.schema, data))
        if outcome.ok:
            return Success(outcome.value, provider=provider.name)
        return replace(outcome, provider=provider.name)

    async def _invoke(
        self,
        provider: ResolvedProvider,
        call: ModelCall,
        timeout: float,
    ) -> GenerationOutcome:
        t0 = time.monotonic()
        try:
            raw = await asyncio.wait_for(provider.backend.ainvoke(call), timeout=timeout)
        except ConfigurationError:
            raise
        except asyncio.TimeoutError:
            return Failure(
                kind=ErrorKind.TRANSPORT,
                message=f"timeout after {timeout:g}s waiting for provider '{provider.name}'",
                provider=provider.name,
            )
        except Exception as e:
            return Failure(
                kind=ErrorKind.TRANSPORT,
                message=f"{type(e).__name__}: {e}",
                provider=provider.name,
            )
        log.debug(logger, MODULE, "invoke_done", "Provider call complete",
                  provider=provider.name, latency_ms=int((time.monotonic() - t0) * 1000))
        return Success(raw, provider=provider.name)

    async def health_check(self, provider_name: Optional[str] = None) -> bool:
        """One short generation against a single provider, no fallback."""
        provider = self.registry.resolve(provider_name)
        request = GenerationRequest(
            schema=HealthCheckOutput,
            system_prompt=HEALTH_SYSTEM,
            user_prompt=HEALTH_USER,
            provider_name=provider.name,
            options=GenerationOptions(temperature=0.0, max_retries=1, max_tokens=50),
        )
        outcome = await self.run_attempts(provider, request, request.options)
        healthy = outcome.ok and outcome.value.status.strip().upper() == "OK"
        log.info(logger, MODULE, "health_check", "Provider health checked",
                 provider=provider.name, healthy=healthy,
                 error=None if outcome.ok else outcome.message)
        return healthy

"""Fallback chain.

Runs after the original provider's attempt chain is exhausted. Every other
registered provider gets exactly one conservative attempt, in registration
order; the first success wins. Auto-recovery is switched off for these
attempts so a failing fallback can never loop back into recovery.
"""

from typing import Awaitable, Callable

from conflux.constants import FALLBACK_MAX_RETRIES, FALLBACK_TEMPERATURE
from conflux.errors import ErrorKind
from conflux.llm.outcome import Failure, GenerationOutcome
from conflux.llm.registry import ProviderRegistry, ResolvedProvider
from conflux.llm.types import GenerationOptions, GenerationRequest
from conflux.utils.logging import log, get_logger

MODULE = "llm.fallback"
logger = get_logger()

AttemptRunner = Callable[
    [ResolvedProvider, GenerationRequest, GenerationOptions],
    Awaitable[GenerationOutcome],
]


def fallback_options(options: GenerationOptions) -> GenerationOptions:
    return options.model_copy(update={
        "max_retries": FALLBACK_MAX_RETRIES,
        "enable_auto_recovery": False,
        "temperature": min(options.temperature, FALLBACK_TEMPERATURE),
    })


class FallbackChain:
    def __init__(self, registry: ProviderRegistry, run_attempts: AttemptRunner):
        self.registry = registry
        self.run_attempts = run_attempts

    async def run(
        self,
        request: GenerationRequest,
        original: str,
        primary_failure: Failure,
    ) -> GenerationOutcome:
        options = fallback_options(request.options)
        candidates = [name for name in self.registry.list_providers() if name != original]
        causes = [primary_failure]

        for name in candidates:
            provider = self.registry.resolve(name)
            log.info(logger, MODULE, "fallback_start", "Trying fallback provider",
                     provider=name, original=original, temperature=options.temperature)
            outcome = await self.run_attempts(provider, request, options)
            if outcome.ok:
                log.info(logger, MODULE, "fallback_done", "Fallback provider succeeded",
                         provider=name, original=original)
                return outcome
            log.warning(logger, MODULE, "fallback_failed", "Fallback provider failed",
                        provider=name, error=outcome.summary())
            causes.append(outcome)

        log.error(logger, MODULE, "fallback_exhausted", "All providers failed",
                  original=original, tried=[original, *candidates],
                  error=primary_failure.summary())
        return Failure(
            kind=ErrorKind.ALL_PROVIDERS_EXHAUSTED,
            message="All providers failed: " + "; ".join(
                f"{c.provider or '?'}: {c.message}" for c in causes
            ),
            errors=primary_failure.errors,
            attempts=sum(c.attempts for c in causes),
            causes=tuple(causes),
        )

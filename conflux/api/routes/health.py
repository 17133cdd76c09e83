"""Health check endpoint."""

import asyncio

from fastapi import APIRouter, Depends

from conflux.api.deps import get_sequencer
from conflux.constants import APP_NAME, APP_VERSION
from conflux.orchestrator.sequencer import Sequencer
from conflux.schemas.api import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(check: bool = False, sequencer: Sequencer = Depends(get_sequencer)):
    """List the configured providers.

    With `?check=true` every provider also gets one short generation
    (StructuredOutputGenerator.health_check) and the status becomes
    "degraded" when any of them fails it.
    """
    registry = sequencer.registry
    names = registry.list_providers()
    status = "ok" if names else "no_providers"

    checks = None
    if check and names:
        healthy = await asyncio.gather(*(sequencer.generator.health_check(name) for name in names))
        checks = dict(zip(names, healthy))
        if not all(healthy):
            status = "degraded"

    return HealthResponse(
        status=status,
        version=APP_VERSION,
        providers=names,
        default_provider=registry.default_name,
        checks=checks,
    )


@router.get("/")
async def root():
    return {"service": APP_NAME, "version": APP_VERSION}

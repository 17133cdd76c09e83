"""Thinking endpoints: single methods, phases, the golden pattern, custom strategies.

Step failures come back as data (a failed StepResult, or an IntegratedResult
whose status is partially_failed or aborted) with HTTP 200. Only unknown
methods/phases and provider configuration problems are HTTP errors.
"""

from fastapi import APIRouter, Depends, HTTPException

from conflux.agents.methods import METHOD_SPECS
from conflux.agents.runner import AgentContext
from conflux.api.deps import get_sequencer
from conflux.orchestrator.sequencer import Sequencer
from conflux.orchestrator.strategy import PHASE_STRATEGIES, OrchestrationStrategy
from conflux.schemas.api import (
    CustomStrategyRequest,
    MethodInfo,
    PhaseThinkRequest,
    StrategyResponse,
    ThinkRequest,
)
from conflux.schemas.examples import example_for
from conflux.schemas.thinking import IntegratedResult, StepResult
from conflux.utils.logging import log, get_logger

MODULE = "thinking"
logger = get_logger()

router = APIRouter()


def _require_method(method: str) -> None:
    if method not in METHOD_SPECS:
        raise HTTPException(status_code=404, detail=f"Unknown thinking method: {method}")


def _require_phase(phase: str) -> OrchestrationStrategy:
    strategy = PHASE_STRATEGIES.get(phase)
    if strategy is None:
        raise HTTPException(status_code=404, detail=f"Unknown development phase: {phase}")
    return strategy


@router.get("/methods", response_model=list[MethodInfo], tags=["methods"])
async def list_methods():
    return [
        MethodInfo(
            method=spec.method,
            description=spec.description,
            phases=list(spec.phases),
            input_example=example_for(spec.input_schema) or {},
        )
        for spec in METHOD_SPECS.values()
    ]


@router.post("/methods/{method}", response_model=StepResult, tags=["methods"])
async def run_method(
    method: str,
    body: PhaseThinkRequest,
    sequencer: Sequencer = Depends(get_sequencer),
):
    _require_method(method)
    log.info(logger, MODULE, "method_request", f"Running {method} thinking",
             method=method, phase=body.phase, provider=body.provider_name)
    context = AgentContext(phase=body.phase, provider_name=body.provider_name)
    return await sequencer.run_single_step(method, body.input, context)


@router.get("/phases/{phase}/strategy", response_model=StrategyResponse, tags=["phases"])
async def phase_strategy(phase: str):
    strategy = _require_phase(phase)
    return StrategyResponse(
        phase=phase,
        primary=strategy.primary,
        secondary=strategy.secondary,
        sequence=strategy.sequence,
        recommended_methods=strategy.methods,
    )


@router.post("/phases/{phase}", response_model=IntegratedResult, tags=["phases"])
async def run_phase(
    phase: str,
    body: ThinkRequest,
    sequencer: Sequencer = Depends(get_sequencer),
):
    _require_phase(phase)
    log.info(logger, MODULE, "phase_request", f"Running phase {phase}",
             phase=phase, provider=body.provider_name)
    return await sequencer.process_phase(phase, body.input, AgentContext(provider_name=body.provider_name))


@router.post("/golden-pattern", response_model=IntegratedResult, tags=["phases"])
async def run_golden_pattern(
    body: ThinkRequest,
    sequencer: Sequencer = Depends(get_sequencer),
):
    log.info(logger, MODULE, "golden_request", "Running the golden pattern",
             provider=body.provider_name)
    return await sequencer.process_golden_pattern(body.input, AgentContext(provider_name=body.provider_name))


@router.post("/strategies/custom", response_model=IntegratedResult, tags=["phases"])
async def run_custom_strategy(
    body: CustomStrategyRequest,
    sequencer: Sequencer = Depends(get_sequencer),
):
    strategy = OrchestrationStrategy(
        primary=body.primary,
        secondary=body.secondary,
        sequence=body.sequence,
    )
    log.info(logger, MODULE, "custom_request", "Running a custom strategy",
             phase=body.phase, methods=strategy.methods, provider=body.provider_name)
    return await sequencer.process_custom_strategy(
        body.phase, strategy, body.input, AgentContext(provider_name=body.provider_name),
    )

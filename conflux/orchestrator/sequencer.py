"""Orchestration sequencer.

Runs thinking steps and turns their StepResults into one IntegratedResult.

Sequential runs (run_sequence) go through the LangGraph sequence graph:
each step's output is merged into the running input, and the first failed
step ends the graph. What the run returns then depends on that failure:

  failure carries repair guidance  → schema-guidance result (aborted)
  first step failed                → aborted result with that one step
  later step failed                → schema-guidance result (aborted)

Parallel runs (run_parallel) fan every step out at once; one step's failure
never cancels its siblings.

A step's own failure is always data. Only ConfigurationError (no usable
provider) escapes, because no step can report on it.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional, Sequence, Union

from conflux.agents.input_adapter import convert_input_for_method
from conflux.agents.methods import METHOD_SPECS
from conflux.agents.runner import AgentContext, MethodAgent
from conflux.config import call_timeout
from conflux.errors import ConfigurationError
from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.registry import build_registry_from_env
from conflux.orchestrator.graph import build_sequence_graph
from conflux.orchestrator.strategy import GOLDEN_STRATEGY, OrchestrationStrategy, get_strategy
from conflux.orchestrator.synthesis import (
    create_failure_result,
    create_schema_guidance_result,
    synthesize_results,
)
from conflux.schemas.thinking import IntegratedResult, StepResult
from conflux.utils.logging import log, get_logger

MODULE = "orchestrator"
logger = get_logger()

# adapter(current_input, phase) -> the step's own input
InputAdapter = Callable[[dict, Optional[str]], dict]

GOLDEN_PHASE = "business_exploration"


@dataclass(frozen=True)
class StepSpec:
    """One step of a run: the method plus how to shape its input."""
    method: str
    adapter: Optional[InputAdapter] = None

    def __post_init__(self):
        if self.method not in METHOD_SPECS:
            raise ValueError(f"Unknown thinking method: {self.method}")

    def adapt(self, data: dict, phase: Optional[str]) -> dict:
        if self.adapter is not None:
            return self.adapter(data, phase)
        return convert_input_for_method(self.method, data, phase)


StepLike = Union[str, StepSpec]


def as_steps(steps: Sequence[StepLike]) -> list[StepSpec]:
    if not steps:
        raise ValueError("a run needs at least one step")
    return [s if isinstance(s, StepSpec) else StepSpec(s) for s in steps]


def _strategy_for(steps: list[StepSpec]) -> OrchestrationStrategy:
    methods = [s.method for s in steps]
    return OrchestrationStrategy(primary=methods[0], secondary=methods[1:], sequence=methods)


class Sequencer:
    """Entry point for every orchestration run.

    Built around one StructuredOutputGenerator (and through it, one
    provider registry). Each run gets its own run_id for the logs.
    """

    def __init__(self, generator: StructuredOutputGenerator, agent: Optional[MethodAgent] = None):
        self.generator = generator
        self.agent = agent or MethodAgent(generator)

    @property
    def registry(self):
        return self.generator.registry

    def _preflight(self, context: AgentContext) -> None:
        """Fail fast on a missing provider before any step runs."""
        self.registry.resolve(context.provider_name)

    def _context(self, context: Optional[AgentContext], phase: Optional[str] = None) -> AgentContext:
        context = context or AgentContext()
        return replace(
            context,
            phase=phase or context.phase,
            run_id=context.run_id or uuid.uuid4().hex[:12],
        )

    # =========================================================================
    # STEPS
    # =========================================================================

    async def _execute(self, step: StepSpec, data: dict, context: AgentContext) -> StepResult:
        try:
            step_input = step.adapt(data, context.phase)
        except Exception as e:
            log.error(logger, MODULE, "adapter_failed", f"Input adapter for {step.method} raised",
                      error=str(e), error_type=type(e).__name__,
                      run_id=context.run_id, method=step.method)
            return StepResult(
                method=step.method,
                input=data,
                confidence=0.0,
                reasoning=f"Failed to execute {step.method} thinking: could not adapt input: {e}",
                status="failed",
                metadata={"error_kind": type(e).__name__},
            )

        try:
            return await self.agent.think(step.method, step_input, context)
        except ConfigurationError:
            raise
        except Exception as e:
            log.error(logger, MODULE, "step_raised", f"{step.method} step raised",
                      error=str(e), error_type=type(e).__name__,
                      run_id=context.run_id, method=step.method)
            return StepResult(
                method=step.method,
                input=step_input,
                confidence=0.0,
                reasoning=f"Failed to execute {step.method} thinking: {e}",
                status="failed",
                metadata={"error_kind": type(e).__name__},
            )

    async def run_single_step(
        self,
        method: str,
        data: dict,
        context: Optional[AgentContext] = None,
        adapt: bool = False,
    ) -> StepResult:
        """Run one method. The input is used as-is unless `adapt` is set."""
        context = self._context(context)
        self._preflight(context)
        step = StepSpec(method) if adapt else StepSpec(method, adapter=lambda data, phase: data)
        return await self._execute(step, data, context)

    # =========================================================================
    # SEQUENTIAL
    # =========================================================================

    async def run_sequence(
        self,
        steps: Sequence[StepLike],
        initial_input: dict,
        context: Optional[AgentContext] = None,
        strategy: Optional[OrchestrationStrategy] = None,
    ) -> IntegratedResult:
        steps = as_steps(steps)
        strategy = strategy or _strategy_for(steps)
        context = self._context(context)
        phase = context.phase or "custom"
        self._preflight(context)

        t0 = time.monotonic()
        log.info(logger, MODULE, "run_start", "Starting sequential run",
                 run_id=context.run_id, phase=phase, steps=[s.method for s in steps])

        async def execute(index: int, method: str, current: dict) -> StepResult:
            return await self._execute(steps[index], current, context)

        graph = build_sequence_graph([s.method for s in steps], execute)
        try:
            state = await graph.ainvoke(
                {"current_input": dict(initial_input), "results": [], "halted": False},
                config={"recursion_limit": len(steps) + 5},
            )
        except ConfigurationError:
            raise
        except Exception as e:
            log.error(logger, MODULE, "run_failed", "Sequential run raised",
                      error=str(e), error_type=type(e).__name__,
                      run_id=context.run_id, phase=phase)
            return create_failure_result(phase, strategy, str(e), metadata={"run_id": context.run_id})

        results: list[StepResult] = state["results"]
        result = self._conclude(phase, strategy, results, context)
        log.info(logger, MODULE, "run_done", "Sequential run complete",
                 run_id=context.run_id, phase=phase, status=result.status,
                 steps_run=len(results), confidence=round(result.confidence, 3),
                 duration_ms=int((time.monotonic() - t0) * 1000))
        return result

    def _conclude(
        self,
        phase: str,
        strategy: OrchestrationStrategy,
        results: list[StepResult],
        context: AgentContext,
    ) -> IntegratedResult:
        metadata = {"run_id": context.run_id, "mode": "sequential"}
        failed = results[-1] if results and results[-1].failed else None
        if failed is None:
            return synthesize_results(phase, strategy, results, metadata=metadata)

        if failed.repair_guidance:
            log.info(logger, MODULE, "schema_guidance", "Step returned repair guidance, stopping run",
                     run_id=context.run_id, method=failed.method)
            return create_schema_guidance_result(phase, strategy, failed, results, metadata=metadata)

        if len(results) == 1:
            log.warning(logger, MODULE, "first_step_failed", "First step failed, stopping run",
                        run_id=context.run_id, method=failed.method)
            return synthesize_results(phase, strategy, results, status="aborted", metadata=metadata)

        log.warning(logger, MODULE, "later_step_failed", "Later step failed, returning guidance",
                    run_id=context.run_id, method=failed.method, step=len(results))
        return create_schema_guidance_result(phase, strategy, failed, results, metadata=metadata)

    # =========================================================================
    # PARALLEL
    # =========================================================================

    async def run_parallel(
        self,
        steps: Sequence[StepLike],
        data: dict,
        context: Optional[AgentContext] = None,
        strategy: Optional[OrchestrationStrategy] = None,
    ) -> IntegratedResult:
        steps = as_steps(steps)
        strategy = strategy or OrchestrationStrategy(
            primary=steps[0].method, secondary=[s.method for s in steps[1:]],
        )
        context = self._context(context)
        phase = context.phase or "custom"
        self._preflight(context)

        log.info(logger, MODULE, "run_start", "Starting parallel run",
                 run_id=context.run_id, phase=phase, steps=[s.method for s in steps])

        settled = await asyncio.gather(
            *(self._execute(step, data, context) for step in steps),
            return_exceptions=True,
        )

        results = []
        for step, outcome in zip(steps, settled):
            if isinstance(outcome, StepResult):
                results.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, ConfigurationError):
                raise outcome
            log.error(logger, MODULE, "step_raised", f"{step.method} step raised",
                      error=str(outcome), error_type=type(outcome).__name__,
                      run_id=context.run_id, method=step.method)
            results.append(StepResult(
                method=step.method,
                input=data,
                confidence=0.0,
                reasoning=f"Failed to execute {step.method} thinking: {outcome}",
                status="failed",
                metadata={"error_kind": type(outcome).__name__},
            ))

        result = synthesize_results(phase, strategy, results, metadata={"run_id": context.run_id, "mode": "parallel"})
        log.info(logger, MODULE, "run_done", "Parallel run complete",
                 run_id=context.run_id, phase=phase, status=result.status,
                 succeeded=result.stats.succeeded, failed=result.stats.failed)
        return result

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def process_phase(self, phase: str, data: dict, context: Optional[AgentContext] = None) -> IntegratedResult:
        """Run the built-in strategy for a development phase.

        Raises KeyError for an unknown phase.
        """
        strategy = get_strategy(phase)
        return await self.run_strategy(phase, strategy, data, context)

    async def process_golden_pattern(self, data: dict, context: Optional[AgentContext] = None) -> IntegratedResult:
        return await self.run_strategy(GOLDEN_PHASE, GOLDEN_STRATEGY, data, context)

    async def process_custom_strategy(
        self,
        phase: str,
        strategy: OrchestrationStrategy,
        data: dict,
        context: Optional[AgentContext] = None,
    ) -> IntegratedResult:
        return await self.run_strategy(phase, strategy, data, context)

    async def run_strategy(
        self,
        phase: str,
        strategy: OrchestrationStrategy,
        data: dict,
        context: Optional[AgentContext] = None,
    ) -> IntegratedResult:
        context = self._context(context, phase=phase)
        if strategy.sequence:
            return await self.run_sequence(strategy.sequence, data, context, strategy=strategy)
        return await self.run_parallel(strategy.methods, data, context, strategy=strategy)


def build_sequencer(environ: Optional[Mapping[str, str]] = None) -> Sequencer:
    """Sequencer over the providers configured in the environment."""
    registry = build_registry_from_env(environ)
    generator = StructuredOutputGenerator(registry, default_timeout=call_timeout(environ))
    log.info(logger, MODULE, "sequencer_ready", "Sequencer ready",
             providers=registry.list_providers(), default_provider=registry.default_name)
    return Sequencer(generator)

"""LangGraph sequence graph.

One node per step, in order:
  step_0_<method> → step_1_<method> → ... → END

After every node a conditional edge ends the run if that step failed.
Each completed step's output is merged into the running input under its
method name and under `previous_result`, so later steps see everything
produced before them.
"""

from typing import Awaitable, Callable, Sequence

from langgraph.graph import StateGraph, END

from conflux.orchestrator.state import SequenceState
from conflux.schemas.thinking import StepResult

# execute(step_index, method, current_input) -> StepResult
StepExecutor = Callable[[int, str, dict], Awaitable[StepResult]]


def node_name(index: int, method: str) -> str:
    return f"step_{index}_{method}"


def merge_step_output(current: dict, method: str, output: dict) -> dict:
    """Running input after a step: never replaces, only adds."""
    return {**current, method: output, "previous_result": output}


def should_continue(state: SequenceState) -> bool:
    """Conditional edge: stop at the first failed step."""
    return not state.get("halted")


def _step_node(index: int, method: str, execute: StepExecutor):
    async def run_step(state: SequenceState) -> dict:
        current = state["current_input"]
        result = await execute(index, method, current)
        update = {"results": [result], "halted": result.failed}
        if result.completed:
            update["current_input"] = merge_step_output(current, method, result.output)
        return update

    return run_step


def build_sequence_graph(methods: Sequence[str], execute: StepExecutor):
    """Build and compile the sequential state machine for `methods`.

    Graph structure:
        step_0 → [step_1 | END] → ... → step_n → END
    """
    if not methods:
        raise ValueError("a sequence needs at least one step")

    graph = StateGraph(SequenceState)
    names = [node_name(i, method) for i, method in enumerate(methods)]

    for i, (name, method) in enumerate(zip(names, methods)):
        graph.add_node(name, _step_node(i, method, execute))

    graph.set_entry_point(names[0])
    for name, following in zip(names, names[1:]):
        graph.add_conditional_edges(name, should_continue, {True: following, False: END})
    graph.add_edge(names[-1], END)

    return graph.compile()

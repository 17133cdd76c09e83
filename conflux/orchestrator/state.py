"""LangGraph sequence state schema."""

import operator
from typing import Annotated, TypedDict

from conflux.schemas.thinking import StepResult


class SequenceState(TypedDict):
    """State that flows through a sequential thinking run.

    Each step node reads `current_input` and appends its StepResult to
    `results`. The reducer on `results` concatenates node updates.
    """
    # Running input: the caller's input plus every earlier step's output
    current_input: dict
    results: Annotated[list[StepResult], operator.add]

    # Control flow
    halted: bool

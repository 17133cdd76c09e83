"""Shared fixtures: scripted backends, a recording sleep, registries."""

import copy

import pytest

from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.registry import ProviderRegistry
from conflux.llm.types import ModelCall, ProviderConfig
from conflux.orchestrator.sequencer import Sequencer
from conflux.schemas.examples import example_for


class ScriptedBackend:
    """Replays scripted responses per schema name and records every call.

    Each script entry is a dict (returned), an Exception (raised), or a list
    of those consumed one per call (the last entry repeats). Schemas without
    a script get their registered example.
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.calls: list[ModelCall] = []

    async def ainvoke(self, call: ModelCall):
        self.calls.append(call)
        entry = self.script.get(call.schema.__name__)
        if entry is None:
            return copy.deepcopy(example_for(call.schema))
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        if isinstance(entry, BaseException):
            raise entry
        return copy.deepcopy(entry)

    def calls_for(self, schema_name: str) -> list[ModelCall]:
        return [c for c in self.calls if c.schema.__name__ == schema_name]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


def make_registry(**backends: ScriptedBackend) -> ProviderRegistry:
    """Registry with one scripted provider per keyword, in keyword order."""
    registry = ProviderRegistry()
    for name, backend in backends.items():
        registry.register(name, ProviderConfig(type="mock"), backend=backend)
    return registry


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def registry(backend):
    return make_registry(primary=backend)


@pytest.fixture
def generator(registry, sleep):
    return StructuredOutputGenerator(registry, sleep=sleep)


@pytest.fixture
def sequencer(generator):
    return Sequencer(generator)

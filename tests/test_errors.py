"""Tests for the error taxonomy and the modules that raise it."""

import subprocess
import sys

import pytest

from conflux import errors
from conflux.llm import outcome
from conflux.llm.outcome import Failure, unwrap
from conflux.schemas import thinking


def test_error_types_are_shared():
    assert outcome.GenerationError is errors.GenerationError
    assert thinking.SequenceAborted is errors.SequenceAborted


def test_unwrap_raises_generation_error():
    failure = Failure(kind=errors.ErrorKind.TRANSPORT, message="down")
    with pytest.raises(errors.GenerationError) as exc:
        unwrap(failure)
    assert exc.value.failure is failure
    assert exc.value.kind is errors.ErrorKind.TRANSPORT


def test_transient_markers():
    assert Failure(kind=errors.ErrorKind.TRANSPORT, message="Rate limit hit").is_transient
    assert not Failure(kind=errors.ErrorKind.SCHEMA_VIOLATION, message="timeout").is_transient


@pytest.mark.parametrize("module", [
    "conflux.schemas.thinking",
    "conflux.llm.outcome",
    "conflux.errors",
    "conflux.llm",
])
def test_modules_import_first_in_a_fresh_interpreter(module):
    proc = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
    )
    assert proc.returncode == 0, proc.stderr

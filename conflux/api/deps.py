"""Request dependencies."""

from fastapi import Request

from conflux.orchestrator.sequencer import Sequencer, build_sequencer


def get_sequencer(request: Request) -> Sequencer:
    """The app's sequencer, built from the environment on first use."""
    sequencer = request.app.state.sequencer
    if sequencer is None:
        sequencer = build_sequencer()
        request.app.state.sequencer = sequencer
    return sequencer

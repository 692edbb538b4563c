"""Shared fixtures: logging to memory, a scripted engine and a fake GPU."""

from io import StringIO
from pathlib import Path

import pytest

from llmsweep.engine.base import EngineError, EngineResult, InferenceEngine
from llmsweep.models.run_models import GPUSnapshot
from llmsweep.telemetry.sources import GPUQuery, TelemetryQueryError
from llmsweep.utils.logger import Logger

TRANSCRIPT = """\
The sky appears blue because of Rayleigh scattering.

total duration:       1.5s
load duration:        10.2ms
prompt eval count:    20 token(s)
prompt eval duration: 100ms
prompt eval rate:     200.00 tokens/s
eval count:           100 token(s)
eval duration:        1s
eval rate:            100.00 tokens/s
"""


@pytest.fixture(autouse=True)
def log_output():
    """Configure the Logger to an in-memory stream for every test."""
    output = StringIO()
    Logger.configure(level="DEBUG", output=output, timestamps=False)
    return output


class FakeEngine(InferenceEngine):
    """Engine that writes a canned transcript and records every call."""

    name = "fake"

    def __init__(self, transcript=TRANSCRIPT, exit_code=0, fail=False, error=None):
        self.transcript = transcript
        self.exit_code = exit_code
        self.fail = fail
        self.error = error
        self.calls = []
        self.unloads = []

    def invoke(self, model, prompt, transcript_path, timeout=None):
        self.calls.append((model, prompt, Path(transcript_path)))
        if self.fail:
            raise EngineError("fake engine is not installed")
        if self.error is not None:
            raise self.error
        path = Path(transcript_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if self.transcript is not None:
            path.write_text(self.transcript, encoding="utf-8")
        return EngineResult(exit_code=self.exit_code)

    def unload(self, model):
        self.unloads.append(model)
        return True

    def version(self):
        return "fake 1.0"


class FakeGPUQuery(GPUQuery):
    """GPU source returning a fixed snapshot, optionally failing."""

    name = "fake-gpu"

    def __init__(self, snapshot=None, fail=False):
        self.snapshot = snapshot or GPUSnapshot(8000.0, 24000.0, 90.0, 250.0, 65.0)
        self.fail = fail
        self.queries = 0
        self.closed = False

    def query(self):
        self.queries += 1
        if self.fail:
            raise TelemetryQueryError("no GPU")
        return self.snapshot

    def close(self):
        self.closed = True


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_gpu():
    return FakeGPUQuery()

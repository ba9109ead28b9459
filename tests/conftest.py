"""Shared fixtures for the X-Ray test suite."""

import itertools

import pytest

from xray.config import ConfigManager
from xray.models import Candidate, Step, Trace, TraceMeta, TraceStatus
from xray.store import FileTraceLogStore, InMemoryTraceLogStore


class FakeClock:
    """Epoch-millisecond clock advanced by a fixed tick per reading."""

    def __init__(self, start=1_700_000_000_000, tick=10):
        self._counter = itertools.count(start, tick)

    def __call__(self):
        return next(self._counter)


def build_trace(timestamp=1_700_000_000_000, status=TraceStatus.SUCCESS, steps=None, trace_id=None):
    if steps is None:
        steps = (
            Step(
                id=f"step-{timestamp}",
                name="Apply Filters",
                timestamp=timestamp + 5,
                input={"filters": ["price <= 50"]},
                output={"survivors": ["Yeti Rambler"]},
                reasoning="Filtered down to 1 item.",
                candidates=(
                    Candidate(id="p1", name="Yeti Rambler", data={"price": 35}, status="selected"),
                    Candidate(id="p2", name="Gold Plated Bottle", data={"price": 150},
                              status="rejected", reason="Price $150 > $50"),
                ),
            ),
        )
    return Trace(
        trace_id=trace_id or f"trace-{timestamp}",
        timestamp=timestamp,
        status=status,
        steps=steps,
        meta=TraceMeta(duration=42, environment="test"),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_trace():
    return build_trace


@pytest.fixture
def trace():
    return build_trace()


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "data" / "traces.jsonl"


@pytest.fixture(params=["file", "memory"])
def store(request, log_path):
    if request.param == "file":
        return FileTraceLogStore(log_path)
    return InMemoryTraceLogStore()


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    for name in ("XRAY_LOG_PATH", "XRAY_READ_LIMIT", "XRAY_ENVIRONMENT", "XRAY_INGEST_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    return ConfigManager(tmp_path).load()

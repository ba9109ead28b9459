import json
from enum import Enum

import pytest

from xray.errors import TraceFormatError
from xray.models import Candidate, CandidateStatus, Step, Trace, TraceStatus, snapshot


def test_selected_candidate_rejects_reason():
    with pytest.raises(ValueError):
        Candidate(id="p1", name="Yeti", data={}, status="selected", reason="too cheap")


def test_empty_reason_is_dropped():
    c = Candidate(id="p1", name="Yeti", data={}, status=CandidateStatus.SELECTED, reason="")
    assert c.reason is None
    assert "reason" not in c.to_dict()


def test_candidate_status_from_string():
    c = Candidate(id="p2", name="Cheap", data={"price": 8}, status="rejected", reason="Rating 3.2 is too low")
    assert c.status is CandidateStatus.REJECTED
    assert c.to_dict()["status"] == "rejected"


def test_unknown_candidate_status():
    with pytest.raises(ValueError):
        Candidate(id="p1", name="Yeti", data={}, status="maybe")


def test_step_snapshots_are_detached():
    payload = {"query": "bottle", "tags": ["steel"]}
    step = Step.create(name="Search", input=payload, output=[1, 2], reasoning="ok", timestamp=1)
    payload["query"] = "mug"
    payload["tags"].append("glass")

    assert step.input == {"query": "bottle", "tags": ("steel",)}


def test_snapshot_converts_tuples_enums_and_to_dict():
    class Colour(Enum):
        RED = "red"

    class Product:
        def to_dict(self):
            return {"id": "p1", "colours": (Colour.RED,)}

    assert snapshot(Product()) == {"id": "p1", "colours": ["red"]}


def test_snapshot_rejects_unrecordable_values():
    with pytest.raises(TypeError):
        snapshot({"handle": object()})
    with pytest.raises(TypeError):
        snapshot({1: "int key"})
    with pytest.raises(ValueError):
        snapshot(float("nan"))


def test_optional_step_fields_omitted():
    step = Step.create(name="Select", input=None, output="Yeti", reasoning="best", timestamp=1)
    data = step.to_dict()
    assert "candidates" not in data
    assert "metadata" not in data


def test_trace_wire_keys(trace):
    data = trace.to_dict()
    assert set(data) == {"traceId", "timestamp", "status", "steps", "meta"}
    assert data["meta"] == {"duration": 42, "environment": "test"}
    assert data["status"] == "success"


def test_trace_json_roundtrip(trace):
    assert Trace.from_json(trace.to_json()) == trace


def test_to_json_is_single_line(make_trace):
    step = Step.create(name="Multi\nline", input="a\nb", output=None,
                       reasoning="first\nsecond third", timestamp=1)
    record = make_trace(steps=(step,)).to_json()
    assert "\n" not in record
    assert Trace.from_json(record).steps[0].reasoning == "first\nsecond third"


def test_single_selected_candidate_survives_roundtrip(make_trace):
    step = Step.create(
        name="Rank",
        input={"k": 1},
        output={"winner": "p3"},
        reasoning="Highest rating wins.",
        timestamp=10,
        candidates=[
            {"id": "p1", "name": "HydroFlask", "data": {"rating": 4.5}, "status": "rejected", "reason": "Lower rating"},
            {"id": "p2", "name": "Cheap Bottle", "data": {"rating": 3.2}, "status": "rejected", "reason": "Lower rating"},
            {"id": "p3", "name": "Yeti Rambler", "data": {"rating": 4.8}, "status": "selected"},
            {"id": "p4", "name": "Gold Plated", "data": {"rating": 5.0}, "status": "pending", "reason": "Too few reviews"},
        ],
    )
    restored = Trace.from_json(make_trace(steps=(step,)).to_json())

    candidates = restored.steps[0].candidates
    assert len(candidates) == 4
    assert [c.id for c in restored.steps[0].selected] == ["p3"]
    assert all(c.reason for c in candidates if c.status is not CandidateStatus.SELECTED)
    assert restored.steps[0].selected[0].reason is None


@pytest.mark.parametrize("mutate", [
    lambda d: d.pop("traceId"),
    lambda d: d.update(status="exploded"),
    lambda d: d.update(steps="not a list"),
    lambda d: d["meta"].pop("duration"),
    lambda d: d["steps"][0].pop("reasoning"),
    lambda d: d["steps"][0]["candidates"][0].update(reason="selected but rejected"),
])
def test_malformed_trace_dict(trace, mutate):
    data = trace.to_dict()
    mutate(data)
    with pytest.raises(TraceFormatError):
        Trace.from_dict(data)


def test_from_json_rejects_non_object():
    with pytest.raises(TraceFormatError):
        Trace.from_json("[1, 2, 3]")
    with pytest.raises(TraceFormatError):
        Trace.from_json('{"traceId": "x"')


def test_trace_status_is_enum(make_trace):
    t = make_trace(status="failure")
    assert t.status is TraceStatus.FAILURE
    assert json.loads(t.to_json())["status"] == "failure"


def test_recorded_payloads_are_read_only(trace):
    step = trace.steps[0]

    with pytest.raises(TypeError):
        step.output["survivors"] = []
    with pytest.raises(AttributeError):
        step.input["filters"].append("rating > 4.0")
    with pytest.raises(TypeError):
        step.candidates[0].data["price"] = 1

    assert step.to_dict()["input"] == {"filters": ["price <= 50"]}
    assert isinstance(step.to_dict()["input"]["filters"], list)


@pytest.mark.parametrize("path", [
    ("timestamp",),
    ("meta", "duration"),
    ("steps", 0, "timestamp"),
])
@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_rejected(trace, path, bad):
    data = trace.to_dict()
    target = data
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = bad

    with pytest.raises(TraceFormatError):
        Trace.from_dict(data)

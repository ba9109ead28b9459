"""
X-Ray - Trace Models
Structured representations for candidates, steps and traces, plus their
wire form (one compact JSON document per trace).
"""

import json
import math
import uuid
from dataclasses import dataclass, asdict, is_dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import TraceFormatError


JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]


class CandidateStatus(Enum):
    """Outcome of a candidate at a step."""
    SELECTED = "selected"
    REJECTED = "rejected"
    PENDING = "pending"


class TraceStatus(Enum):
    """Outcome of a whole run."""
    SUCCESS = "success"
    FAILURE = "failure"


def new_id() -> str:
    return str(uuid.uuid4())


def snapshot(value: Any) -> JsonValue:
    """
    Convert a value into a detached JSON value.

    Mappings and sequences are copied recursively, so later mutation of the
    original does not reach the snapshot. Enums become their value; objects
    exposing ``to_dict()`` and dataclass instances are converted first.

    Raises:
        TypeError: The value (or something inside it) has no JSON form.
        ValueError: A float is NaN or infinite.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Non-finite number cannot be recorded: {value!r}")
        return value
    if isinstance(value, Enum):
        return snapshot(value.value)
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Snapshot keys must be strings, got {type(key).__name__}")
            result[key] = snapshot(item)
        return result
    if isinstance(value, (list, tuple)):
        return [snapshot(item) for item in value]
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return snapshot(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return snapshot(asdict(value))
    raise TypeError(f"Cannot record value of type {type(value).__name__}")


def freeze(value: JsonValue) -> Any:
    """
    Read-only view of a snapshot: mappings become ``MappingProxyType`` and
    lists become tuples. ``snapshot()`` turns a frozen value back into plain
    JSON.
    """
    if isinstance(value, dict):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(freeze(item) for item in value)
    return value


def _require(data: Mapping[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, Mapping):
        raise TraceFormatError(f"{kind} must be an object, got {type(data).__name__}")
    if key not in data:
        raise TraceFormatError(f"{kind} is missing '{key}'")
    return data[key]


def _require_number(data: Mapping[str, Any], key: str, kind: str) -> Union[int, float]:
    value = _require(data, key, kind)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TraceFormatError(f"{kind}.{key} must be a number")
    if not math.isfinite(value):
        raise TraceFormatError(f"{kind}.{key} must be finite")
    return value


@dataclass(frozen=True)
class Candidate:
    """One option evaluated at a step."""

    id: str
    name: str
    data: Mapping[str, JsonValue]
    status: CandidateStatus
    reason: Optional[str] = None

    def __post_init__(self):
        status = CandidateStatus(self.status)
        data = snapshot(self.data if self.data is not None else {})
        if not isinstance(data, dict):
            raise TypeError("Candidate data must be a mapping")
        # Selected items come through with reason "" from some explainers
        reason = self.reason or None
        if status is CandidateStatus.SELECTED and reason is not None:
            raise ValueError(f"Selected candidate '{self.id}' cannot carry a rejection reason")

        object.__setattr__(self, "status", status)
        object.__setattr__(self, "data", freeze(data))
        object.__setattr__(self, "reason", reason)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "name": self.name,
            "data": snapshot(self.data),
            "status": self.status.value,
        }
        if self.reason is not None:
            result["reason"] = self.reason
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candidate":
        try:
            return cls(
                id=_require(data, "id", "candidate"),
                name=_require(data, "name", "candidate"),
                data=data.get("data") or {},
                status=CandidateStatus(_require(data, "status", "candidate")),
                reason=data.get("reason"),
            )
        except TraceFormatError:
            raise
        except (TypeError, ValueError) as e:
            raise TraceFormatError(f"Invalid candidate: {e}")


def _coerce_candidates(candidates: Optional[Sequence[Any]]) -> Optional[Tuple[Candidate, ...]]:
    if candidates is None:
        return None
    return tuple(
        c if isinstance(c, Candidate) else Candidate.from_dict(c)
        for c in candidates
    )


@dataclass(frozen=True)
class Step:
    """
    One recorded unit of work within a trace.

    Payload fields are read-only views; use ``to_dict()`` for plain JSON.
    """

    id: str
    name: str
    timestamp: int
    input: JsonValue
    output: JsonValue
    reasoning: str
    candidates: Optional[Tuple[Candidate, ...]] = None
    metadata: Optional[Mapping[str, JsonValue]] = None

    def __post_init__(self):
        object.__setattr__(self, "input", freeze(snapshot(self.input)))
        object.__setattr__(self, "output", freeze(snapshot(self.output)))
        object.__setattr__(self, "candidates", _coerce_candidates(self.candidates))
        if self.metadata is not None:
            metadata = snapshot(self.metadata)
            if not isinstance(metadata, dict):
                raise TypeError("Step metadata must be a mapping")
            object.__setattr__(self, "metadata", freeze(metadata))

    @classmethod
    def create(
        cls,
        name: str,
        input: Any,
        output: Any,
        reasoning: str,
        timestamp: int,
        candidates: Optional[Sequence[Any]] = None,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> "Step":
        """Create a step with a fresh id."""
        return cls(
            id=new_id(),
            name=name,
            timestamp=timestamp,
            input=input,
            output=output,
            reasoning=reasoning,
            candidates=candidates,
            metadata=metadata,
        )

    @property
    def selected(self) -> List[Candidate]:
        """Candidates that made it through this step."""
        return [c for c in (self.candidates or ()) if c.status is CandidateStatus.SELECTED]

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "input": snapshot(self.input),
            "output": snapshot(self.output),
            "reasoning": self.reasoning,
        }
        if self.candidates is not None:
            result["candidates"] = [c.to_dict() for c in self.candidates]
        if self.metadata is not None:
            result["metadata"] = snapshot(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Step":
        try:
            reasoning = _require(data, "reasoning", "step")
            if not isinstance(reasoning, str):
                raise TraceFormatError("step.reasoning must be a string")
            candidates = data.get("candidates")
            if candidates is not None and not isinstance(candidates, list):
                raise TraceFormatError("step.candidates must be a list")
            return cls(
                id=_require(data, "id", "step"),
                name=_require(data, "name", "step"),
                timestamp=_require_number(data, "timestamp", "step"),
                input=data.get("input"),
                output=data.get("output"),
                reasoning=reasoning,
                candidates=candidates,
                metadata=data.get("metadata"),
            )
        except TraceFormatError:
            raise
        except (TypeError, ValueError) as e:
            raise TraceFormatError(f"Invalid step: {e}")


@dataclass(frozen=True)
class TraceMeta:
    """Run-level metadata fixed at finalize time."""
    duration: int
    environment: str

    def to_dict(self) -> Dict[str, Any]:
        return {"duration": self.duration, "environment": self.environment}


@dataclass(frozen=True)
class Trace:
    """
    The complete record of one pipeline run.

    Steps keep their capture order; that order is authoritative even when
    step timestamps disagree with it.
    """

    trace_id: str
    timestamp: int
    status: TraceStatus
    steps: Tuple[Step, ...]
    meta: TraceMeta

    def __post_init__(self):
        object.__setattr__(self, "status", TraceStatus(self.status))
        object.__setattr__(self, "steps", tuple(self.steps))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "traceId": self.trace_id,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "meta": self.meta.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Trace":
        """
        Decode the wire form of a trace.

        Raises:
            TraceFormatError: A required field is missing or malformed.
        """
        try:
            trace_id = _require(data, "traceId", "trace")
            if not isinstance(trace_id, str) or not trace_id:
                raise TraceFormatError("trace.traceId must be a non-empty string")
            steps = _require(data, "steps", "trace")
            if not isinstance(steps, list):
                raise TraceFormatError("trace.steps must be a list")
            meta = _require(data, "meta", "trace")
            return cls(
                trace_id=trace_id,
                timestamp=_require_number(data, "timestamp", "trace"),
                status=TraceStatus(_require(data, "status", "trace")),
                steps=tuple(Step.from_dict(s) for s in steps),
                meta=TraceMeta(
                    duration=_require_number(meta, "duration", "trace.meta"),
                    environment=str(_require(meta, "environment", "trace.meta")),
                ),
            )
        except TraceFormatError:
            raise
        except (TypeError, ValueError) as e:
            raise TraceFormatError(f"Invalid trace: {e}")

    def to_json(self) -> str:
        """Serialize to a single-line JSON record."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"), allow_nan=False)

    @classmethod
    def from_json(cls, text: str) -> "Trace":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise TraceFormatError(f"Record is not valid JSON: {e}")
        return cls.from_dict(data)

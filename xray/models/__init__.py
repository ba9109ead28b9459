"""
X-Ray - Model Components
Candidates, steps and traces.
"""

from .trace import (
    Candidate,
    CandidateStatus,
    JsonValue,
    Step,
    Trace,
    TraceMeta,
    TraceStatus,
    snapshot,
)

__all__ = [
    "Candidate",
    "CandidateStatus",
    "JsonValue",
    "Step",
    "Trace",
    "TraceMeta",
    "TraceStatus",
    "snapshot",
]

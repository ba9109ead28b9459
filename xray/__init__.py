"""
X-Ray - Decision Trace Capture
Record why each step of a pipeline chose what it chose.
"""

from .models import Candidate, CandidateStatus, Step, Trace, TraceMeta, TraceStatus
from .recorder import Explanation, RecorderState, TraceRecorder, recording
from .store import FileTraceLogStore, InMemoryTraceLogStore, TraceLogStore
from .transport import HttpTraceSubmitter, StoreTraceSubmitter, TraceSubmitter

__all__ = [
    "Candidate",
    "CandidateStatus",
    "Explanation",
    "FileTraceLogStore",
    "HttpTraceSubmitter",
    "InMemoryTraceLogStore",
    "RecorderState",
    "Step",
    "StoreTraceSubmitter",
    "Trace",
    "TraceLogStore",
    "TraceMeta",
    "TraceRecorder",
    "TraceStatus",
    "TraceSubmitter",
    "recording",
]

"""
X-Ray - Storage Components
Append-only trace log stores.
"""

from .log_store import (
    DEFAULT_READ_LIMIT,
    FileTraceLogStore,
    InMemoryTraceLogStore,
    TraceLogStore,
)

__all__ = [
    "DEFAULT_READ_LIMIT",
    "FileTraceLogStore",
    "InMemoryTraceLogStore",
    "TraceLogStore",
]

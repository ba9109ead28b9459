"""
X-Ray - Trace Log Stores
Append-only JSON Lines storage for finalized traces.

Every trace is one self-contained line. Writers only ever append; readers
decode each line on its own and skip anything they cannot decode.
"""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..errors import StorageError, TraceFormatError
from ..models.trace import Trace

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 50


def decode_newest_first(records: Iterable[Union[str, bytes]], limit: Optional[int]) -> List[Trace]:
    """
    Decode raw records already ordered newest-first.

    Args:
        records: Raw records, newest first.
        limit: Stop after this many decoded traces (None for no bound).

    Returns:
        Decoded traces, newest first. Undecodable records are skipped.
    """
    if limit is not None and limit <= 0:
        return []

    traces: List[Trace] = []
    skipped = 0
    for raw in records:
        if limit is not None and len(traces) >= limit:
            break
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            if not text.strip():
                continue
            traces.append(Trace.from_json(text))
        except (UnicodeDecodeError, TraceFormatError, RecursionError) as e:
            skipped += 1
            logger.debug("Skipping unreadable trace record: %s", e)

    if skipped:
        logger.warning("Skipped %d unreadable trace record(s)", skipped)
    return traces


def _ends_with_newline(fd: int, size: int) -> bool:
    os.lseek(fd, size - 1, os.SEEK_SET)
    return os.read(fd, 1) == b"\n"


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


class TraceLogStore(ABC):
    """
    Durable sink for traces.

    ``append`` and ``truncate`` are serialized through one write lock per
    store; ``read`` takes no lock and sees either side of an in-flight write,
    never half of one.
    """

    def __init__(self):
        self._write_lock = threading.Lock()

    @abstractmethod
    def append(self, trace: Trace) -> None:
        """
        Append one trace.

        Raises:
            StorageError: The record could not be written.
        """

    @abstractmethod
    def read(self, limit: Optional[int] = DEFAULT_READ_LIMIT) -> List[Trace]:
        """Return up to ``limit`` traces, most recently appended first."""

    @abstractmethod
    def truncate(self) -> None:
        """
        Empty the log. Truncating an empty log is a no-op.

        Raises:
            StorageError: The log could not be reset.
        """


class FileTraceLogStore(TraceLogStore):
    """
    Trace log kept in a single JSON Lines file.

    Records are appended with O_APPEND, so appends never rewrite earlier
    content. A failed append is cut back to the previous file size, leaving
    no partial record. Truncation swaps in an empty file with ``os.replace``.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize the store.

        Args:
            path: JSON Lines file holding the log. Created on first write.
        """
        super().__init__()
        self.path = Path(path)

    def append(self, trace: Trace) -> None:
        record = (trace.to_json() + "\n").encode("utf-8")

        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd = os.open(str(self.path), os.O_RDWR | os.O_APPEND | os.O_CREAT, 0o644)
                try:
                    size = os.fstat(fd).st_size
                    # Fence off a fragment left by a writer that died mid-record
                    if size and not _ends_with_newline(fd, size):
                        record = b"\n" + record
                    try:
                        _write_all(fd, record)
                        os.fsync(fd)
                    except OSError:
                        os.ftruncate(fd, size)
                        raise
                finally:
                    os.close(fd)
            except OSError as e:
                raise StorageError(f"Failed to append trace {trace.trace_id} to {self.path}: {e}") from e

    def read(self, limit: Optional[int] = DEFAULT_READ_LIMIT) -> List[Trace]:
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Trace log %s is unreadable: %s", self.path, e)
            return []

        # The last element is either empty or an append still in flight
        lines = content.split(b"\n")[:-1]
        return decode_newest_first(reversed(lines), limit)

    def truncate(self) -> None:
        with self._write_lock:
            tmp_path = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
                )
                os.close(fd)
                os.replace(tmp_path, str(self.path))
                tmp_path = None
            except OSError as e:
                raise StorageError(f"Failed to truncate trace log {self.path}: {e}") from e
            finally:
                if tmp_path is not None and os.path.exists(tmp_path):
                    os.remove(tmp_path)

        logger.info("Trace log %s truncated", self.path)


class InMemoryTraceLogStore(TraceLogStore):
    """Trace log held in process memory, for tests and embedded use."""

    def __init__(self):
        super().__init__()
        self._records: List[str] = []

    def append(self, trace: Trace) -> None:
        record = trace.to_json()
        with self._write_lock:
            self._records.append(record)

    def inject_raw(self, record: str) -> None:
        """Append a raw record as-is, bypassing serialization."""
        with self._write_lock:
            self._records.append(record)

    def read(self, limit: Optional[int] = DEFAULT_READ_LIMIT) -> List[Trace]:
        records = list(self._records)
        return decode_newest_first(reversed(records), limit)

    def truncate(self) -> None:
        with self._write_lock:
            self._records = []

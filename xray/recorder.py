"""
X-Ray - Trace Recorder
Wraps pipeline steps, records what each one decided and why, and hands the
finished trace to a submitter.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from .errors import RecorderStateError
from .models.trace import Step, Trace, TraceMeta, TraceStatus, new_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Explanation:
    """What an explainer says about a step result."""
    reasoning: str
    candidates: Optional[Sequence[Any]] = None
    output: Any = None

    @classmethod
    def coerce(cls, value: Union["Explanation", Mapping[str, Any]]) -> "Explanation":
        """Accept an Explanation or a plain mapping with the same keys."""
        if isinstance(value, Explanation):
            return value
        if isinstance(value, Mapping):
            if "reasoning" not in value:
                raise ValueError("Explanation is missing 'reasoning'")
            return cls(
                reasoning=value["reasoning"],
                candidates=value.get("candidates"),
                output=value.get("output"),
            )
        raise TypeError(f"Explainer must return an Explanation or mapping, got {type(value).__name__}")


# An explainer is a pure function of the step result. It must not do I/O:
# its failure is handled exactly like a failure of the work itself.
Explainer = Callable[[Any], Union[Explanation, Mapping[str, Any]]]


class RecorderState(Enum):
    """Recorder lifecycle."""
    OPEN = "open"
    FINALIZED = "finalized"


class TraceRecorder:
    """
    Records one pipeline run.

    A recorder is used by a single pipeline and holds no shared state. Steps
    are appended only after both the work and its explanation succeed, so a
    failing step never leaves a partial record behind.

    Lifecycle:
    1. Open - steps may be captured
    2. Finalized - the trace is frozen and handed to the submitter
    """

    def __init__(
        self,
        submitter=None,
        environment: str = "development",
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize a recorder for a new run.

        Args:
            submitter: TraceSubmitter that receives the finalized trace, or None.
            environment: Label stamped into the trace metadata.
            clock: Returns the current time in epoch milliseconds.
        """
        self.submitter = submitter
        self.environment = environment
        self._clock = clock or now_ms

        self.trace_id = new_id()
        self.start_time = self._clock()

        self._steps: List[Step] = []
        self._state = RecorderState.OPEN
        self._trace: Optional[Trace] = None

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_finalized(self) -> bool:
        return self._state is RecorderState.FINALIZED

    @property
    def steps(self) -> Tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def trace(self) -> Optional[Trace]:
        """The finalized trace, or None while the run is still open."""
        return self._trace

    def _ensure_open(self, action: str) -> None:
        if self._state is RecorderState.FINALIZED:
            raise RecorderStateError(
                f"Cannot {action}: trace {self.trace_id} is already finalized"
            )

    def _build_step(
        self,
        name: str,
        input_snapshot: Any,
        result: Any,
        explain: Explainer,
        metadata: Optional[Mapping[str, Any]]
    ) -> Step:
        explanation = Explanation.coerce(explain(result))
        output = explanation.output if explanation.output is not None else result
        return Step.create(
            name=name,
            input=input_snapshot,
            output=output,
            reasoning=explanation.reasoning,
            timestamp=self._clock(),
            candidates=explanation.candidates,
            metadata=metadata,
        )

    def capture_step(
        self,
        name: str,
        input_snapshot: Any,
        work: Callable[[], T],
        explain: Explainer,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> T:
        """
        Run one unit of work and record it as a step.

        Args:
            name: Step name, e.g. "Apply Filters".
            input_snapshot: What the step was given.
            work: Zero-argument callable doing the actual work.
            explain: Pure function turning the result into an Explanation.
            metadata: Optional extra key/values stored on the step.

        Returns:
            Whatever ``work`` returned.

        Raises:
            RecorderStateError: The recorder is already finalized.
            Any exception raised by ``work`` or ``explain``, unchanged.
        """
        self._ensure_open(f"capture step '{name}'")
        result = work()
        step = self._build_step(name, input_snapshot, result, explain, metadata)
        self._steps.append(step)
        return result

    async def capture_step_async(
        self,
        name: str,
        input_snapshot: Any,
        work: Callable[[], Awaitable[T]],
        explain: Explainer,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> T:
        """Awaitable variant of capture_step for coroutine work."""
        self._ensure_open(f"capture step '{name}'")
        result = await work()
        step = self._build_step(name, input_snapshot, result, explain, metadata)
        # The run may have been finalized while work was suspended
        self._ensure_open(f"capture step '{name}'")
        self._steps.append(step)
        return result

    def add_step(
        self,
        name: str,
        input: Any,
        output: Any,
        reasoning: str,
        candidates: Optional[Sequence[Any]] = None,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> Step:
        """Record a step whose work already happened elsewhere."""
        self._ensure_open(f"add step '{name}'")
        step = Step.create(
            name=name,
            input=input,
            output=output,
            reasoning=reasoning,
            timestamp=self._clock(),
            candidates=candidates,
            metadata=metadata,
        )
        self._steps.append(step)
        return step

    def finalize(self, status: Union[TraceStatus, str] = TraceStatus.SUCCESS) -> Trace:
        """
        Freeze the run into a Trace and hand it to the submitter.

        Args:
            status: Outcome of the run ("success" or "failure").

        Returns:
            The finalized trace.

        Raises:
            RecorderStateError: finalize was already called.
        """
        self._ensure_open("finalize")
        status = TraceStatus(status)
        self._state = RecorderState.FINALIZED

        trace = Trace(
            trace_id=self.trace_id,
            timestamp=self.start_time,
            status=status,
            steps=tuple(self._steps),
            meta=TraceMeta(
                duration=self._clock() - self.start_time,
                environment=self.environment,
            ),
        )
        self._trace = trace

        if self.submitter is not None:
            self._hand_off(trace)
        return trace

    def _hand_off(self, trace: Trace) -> None:
        # Telemetry delivery must never fail the pipeline being observed
        try:
            self.submitter.submit(trace)
        except Exception:
            logger.exception("[X-Ray] Submitter raised for trace %s; trace dropped", trace.trace_id)


@contextmanager
def recording(
    submitter=None,
    environment: str = "development",
    clock: Optional[Callable[[], int]] = None
) -> Iterator[TraceRecorder]:
    """
    Record a run inside a ``with`` block.

    Finalizes with "success" when the block completes and with "failure"
    when it raises; the exception is re-raised. A block that finalizes
    the recorder itself is left alone.
    """
    recorder = TraceRecorder(submitter=submitter, environment=environment, clock=clock)
    try:
        yield recorder
    except Exception:
        if not recorder.is_finalized:
            recorder.finalize(TraceStatus.FAILURE)
        raise
    else:
        if not recorder.is_finalized:
            recorder.finalize(TraceStatus.SUCCESS)

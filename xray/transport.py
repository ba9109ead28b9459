"""
X-Ray - Trace Submitters
Ship a finalized trace to the ingestion log store, once, without ever
failing the pipeline that produced it.
"""

import logging
from abc import ABC, abstractmethod

import requests

from .errors import StorageError, TransportError
from .models.trace import Trace

logger = logging.getLogger(__name__)


class TraceSubmitter(ABC):
    """
    Delivers finalized traces.

    ``submit`` makes a single attempt and reports the outcome as a bool.
    Failures go to the log only; they are never raised to the caller.
    """

    @abstractmethod
    def submit(self, trace: Trace) -> bool:
        """Send a trace. Returns True if it was accepted."""


class HttpTraceSubmitter(TraceSubmitter):
    """
    POSTs traces to the ingestion endpoint.

    Handles:
    - One request per trace, bounded by ``timeout``
    - No retries or buffering; a failed trace is logged and dropped
    """

    def __init__(self, endpoint: str, timeout: float = 5.0, session: requests.Session = None):
        """
        Initialize the HTTP submitter.

        Args:
            endpoint: Ingestion URL, e.g. http://localhost:5000/api/ingest.
            timeout: Seconds to wait for the endpoint.
            session: Optional requests session to reuse connections.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self._http = session or requests

    def _post(self, trace: Trace) -> None:
        response = self._http.post(
            self.endpoint,
            data=trace.to_json().encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout
        )
        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"Ingestion endpoint returned {response.status_code}: {response.text[:200]}"
            )

    def submit(self, trace: Trace) -> bool:
        try:
            self._post(trace)
        except (requests.RequestException, TransportError) as e:
            logger.error("[X-Ray] Failed to submit trace %s: %s", trace.trace_id, e)
            return False

        logger.info("[X-Ray] Trace submitted: %s", trace.trace_id)
        return True


class StoreTraceSubmitter(TraceSubmitter):
    """Appends traces straight into an in-process log store."""

    def __init__(self, store):
        self.store = store

    def submit(self, trace: Trace) -> bool:
        try:
            self.store.append(trace)
        except StorageError as e:
            logger.error("[X-Ray] Failed to store trace %s: %s", trace.trace_id, e)
            return False

        logger.info("[X-Ray] Trace submitted: %s", trace.trace_id)
        return True

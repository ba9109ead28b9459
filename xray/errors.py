"""
X-Ray - Error Types
Central error types so capture, transport and storage fail consistently.
"""


class XRayError(Exception):
    """Base X-Ray error."""


class ConfigError(XRayError):
    """Raised when configuration is missing or invalid."""


class RecorderStateError(XRayError):
    """Raised when a finalized recorder is captured into or finalized again."""


class StorageError(XRayError):
    """Raised when the log store cannot write (append or truncate)."""


class TransportError(XRayError):
    """Raised when the ingestion endpoint rejects a submitted trace."""


class TraceFormatError(XRayError, ValueError):
    """Raised when a stored or submitted record cannot be decoded into a Trace."""

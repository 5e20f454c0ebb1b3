"""
Error taxonomy shared by the store adapter, the services and the API layer.

- ValidationError: malformed input, never retried
- NotFound: unknown id, or an id that belongs to another user
- ConflictError: state conflict, retry after resolving it
- StoreUnavailable: transient transport failure, retried by the caller only
"""

from typing import Dict, Optional


class MetricsError(Exception):
    """Base class for every error raised by the metrics core."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(MetricsError):
    """Malformed input. ``errors`` maps field name to message."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class InvalidWindow(ValidationError):
    pass


class InvalidOdometer(ValidationError):
    pass


class NotFound(MetricsError):
    pass


class NoOpenShift(NotFound):
    pass


class ConflictError(MetricsError):
    pass


class ShiftAlreadyOpen(ConflictError):
    pass


class StoreUnavailable(MetricsError):
    pass


class UnsupportedQuery(MetricsError):
    """Query shape the document store cannot execute."""
    pass

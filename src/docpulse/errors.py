"""Error taxonomy shared by the client and the state components."""

from typing import Any


class DocPulseError(Exception):
    """Base class for every error raised by docpulse."""


class NetworkError(DocPulseError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthError(DocPulseError):
    """Credential rejected and could not be refreshed."""


class ValidationError(DocPulseError):
    """Client-side validation failure. Never reaches the network."""


class ReconciliationError(DocPulseError):
    """Server response is malformed or missing expected fields."""


class HistoryFetchError(DocPulseError):
    """Chat history could not be loaded."""


class FeedLoadError(DocPulseError):
    """Feed posts could not be loaded."""


class NoteSaveError(DocPulseError):
    """The backend did not confirm a saved note."""


def extract_error_message(payload: Any, default: str | None = None) -> str | None:
    """Pull a human-readable message out of an error response body.

    Handles serializer-style bodies such as ``{"content": ["This field may not be blank."]}``
    or ``{"non_field_errors": ["..."]}`` (first list entry of the first list-valued field),
    and simple ``{"error": "..."}`` / ``{"detail": "..."}`` bodies.
    """
    if isinstance(payload, dict):
        for value in payload.values():
            if isinstance(value, list) and value:
                return str(value[0])
        for key in ("error", "detail"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return default


def describe(exc: BaseException) -> str:
    """Short description of a failure for toast messages."""
    if isinstance(exc, NetworkError):
        return extract_error_message(exc.payload) or str(exc)
    return str(exc)

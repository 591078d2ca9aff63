"""
Typed errors raised by the session, resolver and mutation layers.

Every error carries a ``kind`` string and structured ``details`` so the
service facade can turn it into a ``{"success": False, "error": ...}``
result without losing information.
"""

from typing import Any, Dict, Optional


class WordToolsError(Exception):
    """Base class for all document tool errors."""

    kind = "Error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            data["details"] = dict(self.details)
        return data


# ---------------------------------------------------------------------------
# Locator resolution
# ---------------------------------------------------------------------------

class LocatorError(WordToolsError):
    """A locator could not be turned into a range."""


class NotFoundError(LocatorError):
    kind = "NotFound"


class OutOfRangeError(LocatorError):
    kind = "OutOfRange"


class InvalidLocatorError(LocatorError):
    kind = "InvalidLocator"


class ArgumentValidationError(WordToolsError):
    """Caller input rejected before touching the document."""

    kind = "ValidationError"


# ---------------------------------------------------------------------------
# Session / host
# ---------------------------------------------------------------------------

class SyncError(WordToolsError):
    """A flush failed; nothing queued in that batch was resolved."""

    kind = "SyncFailure"


class StaleReferenceError(SyncError):
    """A proxy points at content that was deleted or merged."""

    kind = "StaleReference"


class PropertyNotLoadedError(WordToolsError):
    """A property was read before being queued and flushed."""

    kind = "PropertyNotLoaded"


class BranchUnavailableError(WordToolsError):
    """An isolated load failed on the host; its values are missing."""

    kind = "Unavailable"


STALE_REFERENCE = "StaleReference"


def host_error(kind: Optional[str], message: Optional[str]) -> SyncError:
    """Map a host-reported failure onto the session error hierarchy."""
    text = message or "Document host reported an error"
    if kind == STALE_REFERENCE:
        return StaleReferenceError(text)
    return SyncError(text, host_kind=kind or "GeneralException")

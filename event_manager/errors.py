"""
Error types shared by every Event Manager service.

Each error carries a short `kind` tag and the HTTP status code the gateway
answers with, so routes and page snapshots can report them uniformly.
"""

from typing import Any, Dict, Optional


class EventManagerError(Exception):
    """Base class for domain errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class ConfigurationError(EventManagerError):
    """Raised when required Parse connection parameters are missing."""

    kind = "configuration"
    status_code = 503


class ValidationError(EventManagerError):
    """Raised when form input fails local validation."""

    kind = "validation"
    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class AccessDenied(EventManagerError):
    """Raised when the current identity may not use a page or action."""

    kind = "access"
    status_code = 403


class RemoteCallError(EventManagerError):
    """
    A failed call to the Parse Server.

    Covers both transport failures (no `code`) and server-reported errors,
    where `code` is the Parse error code and `status` the HTTP status.
    """

    kind = "remote"

    # Parse "object not found"
    OBJECT_NOT_FOUND = 101

    def __init__(self, message: str, code: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.code == self.OBJECT_NOT_FOUND or self.status == 404

    @property
    def status_code(self) -> int:
        return 404 if self.not_found else 502


class UploadTimeoutError(EventManagerError):
    """The poster upload lost the race against its timer."""

    kind = "timeout"
    status_code = 504


class ActionInProgress(EventManagerError):
    kind = "busy"
    status_code = 409

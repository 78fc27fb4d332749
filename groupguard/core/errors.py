"""
Error taxonomy shared by every feature.

Errors are identified by an ``ErrorKind`` tag rather than by exception
subclass. ``STATUS_CODES`` is the only place a kind is turned into an HTTP
status.
"""
import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    """Closed set of error kinds."""
    AUTHENTICATION_REQUIRED = "authentication_required"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMITED = "rate_limited"
    # Internal only: logged by the activity recorder, never raised to a caller
    AUDIT_WRITE_FAILURE = "audit_write_failure"


STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.AUTHENTICATION_REQUIRED: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.AUDIT_WRITE_FAILURE: 500,
}

DEFAULT_DETAILS: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION_REQUIRED: "Authentication required",
    ErrorKind.PERMISSION_DENIED: "Insufficient permissions",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.VALIDATION_ERROR: "Invalid input",
    ErrorKind.RATE_LIMITED: "Too many requests",
    ErrorKind.AUDIT_WRITE_FAILURE: "Activity log write failed",
}


class AppError(Exception):
    """
    Application error tagged with an ``ErrorKind``.

    Usage:
        raise AppError(ErrorKind.NOT_FOUND, "Group not found")
    """

    def __init__(self, kind: ErrorKind, detail: Any = None):
        self.kind = kind
        self.detail = detail if detail is not None else DEFAULT_DETAILS[kind]
        super().__init__(f"{kind.value}: {self.detail}")

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "detail": self.detail}

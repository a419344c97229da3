"""
core/errors.py -- Error taxonomy shared by the auth core and the HTTP layer.

Usage:
    from core.errors import ErrorKind, InkwellError

    raise InkwellError(ErrorKind.NOT_FOUND, "Email not found")

Every failure a caller can observe is one of the eight kinds below. The HTTP
layer turns an InkwellError into its status code plus the envelope
{"error": {"code": ..., "message": ...}}. Messages are short and written for
end users; internal detail (stack traces, provider error bodies, SQL) is
logged where it happens and never attached to the error.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Machine-readable error codes."""

    INVALID_INPUT = "invalid_input"
    DUPLICATE_ACCOUNT = "duplicate_account"
    NOT_FOUND = "not_found"
    WRONG_AUTH_METHOD = "wrong_auth_method"
    INVALID_CREDENTIAL = "invalid_credential"
    MISSING_CREDENTIAL = "missing_credential"
    FEDERATED_AUTH_FAILED = "federated_auth_failed"
    INTERNAL_ERROR = "internal_error"


# Status codes follow the contract the frontend was built against: most
# auth failures are 403, only a missing bearer token is 401.
_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 403,
    ErrorKind.DUPLICATE_ACCOUNT: 500,
    ErrorKind.NOT_FOUND: 403,
    ErrorKind.WRONG_AUTH_METHOD: 403,
    ErrorKind.INVALID_CREDENTIAL: 403,
    ErrorKind.MISSING_CREDENTIAL: 401,
    ErrorKind.FEDERATED_AUTH_FAILED: 500,
    ErrorKind.INTERNAL_ERROR: 500,
}

INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again."


class InkwellError(Exception):
    """An expected, user-visible failure with one of the ErrorKind codes.

    field names the offending request field for INVALID_INPUT errors so the
    client can highlight it; it is None for every other kind.
    """

    def __init__(self, kind: ErrorKind, message: str, field: str | None = None) -> None:
        self.kind = kind
        self.message = message
        self.field = field
        super().__init__(f"[{kind.value}] {message}")

    @classmethod
    def internal(cls) -> "InkwellError":
        return cls(ErrorKind.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)

    @property
    def status_code(self) -> int:
        return _STATUS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API error envelope body."""
        body: dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.field is not None:
            body["field"] = self.field
        return body

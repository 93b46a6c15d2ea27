# app/errors.py
"""
Error taxonomy shared by all gate-pass services.
Services raise these; the API layer renders them as {"ok": false, "error": CODE, "message": ...}.
"""

import enum


class ErrorCode(str, enum.Enum):
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INVALID_STATE = "INVALID_STATE"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


class GatePassError(Exception):
    """Base class. Subclasses pin the error code and HTTP status."""

    code = ErrorCode.INTERNAL
    http_status = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code.value, "message": self.message}


class InvalidInputError(GatePassError):
    code = ErrorCode.INVALID_INPUT
    http_status = 400
    default_message = "Invalid input"


class UnauthenticatedError(GatePassError):
    code = ErrorCode.UNAUTHENTICATED
    http_status = 401
    default_message = "Authentication required"


class ForbiddenError(GatePassError):
    code = ErrorCode.FORBIDDEN
    http_status = 403
    default_message = "Not allowed for this user"


class NotFoundError(GatePassError):
    code = ErrorCode.NOT_FOUND
    http_status = 404
    default_message = "Gate pass not found"


class InvalidStateError(GatePassError):
    code = ErrorCode.INVALID_STATE
    http_status = 409
    default_message = "Gate pass is not in a state that allows this action"


class QuotaExceededError(GatePassError):
    code = ErrorCode.QUOTA_EXCEEDED
    http_status = 429
    default_message = "Pass limit reached for this period"


class InternalError(GatePassError):
    code = ErrorCode.INTERNAL
    http_status = 500
    default_message = "Something went wrong, please try again"

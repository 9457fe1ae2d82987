"""
Error taxonomy shared by every feature.

Each error carries a stable machine-readable ``code`` which the HTTP layer
turns into a status code and a JSON body of the form::

    {"error": {"code": "not-allowed", "message": "...", "status": 403}}
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel


ERROR_STATUSES: Dict[str, int] = {
    "improper-payload": 400,
    "invalid-token": 401,
    "not-allowed": 403,
    "entity-not-found": 404,
    "entity-already-exists": 409,
    "conflicting-history": 409,
    "too-many-requests": 429,
    "invalid-relationship": 500,
    "server-crash": 500,
}

ERROR_MESSAGES: Dict[str, str] = {
    "improper-payload": "The request body or parameters were invalid.",
    "invalid-token": "The access token was missing, invalid or expired.",
    "not-allowed": "You are not allowed to perform this action.",
    "entity-not-found": "The requested entity could not be found.",
    "entity-already-exists": "An entity with the same ID already exists.",
    "conflicting-history": "The change conflicts with the recorded history.",
    "too-many-requests": "You are going too fast.",
    "invalid-relationship": "A membership record could not be interpreted.",
    "server-crash": "An unexpected error occurred.",
}


class ErrorBody(BaseModel):
    """Error details sent to the client."""
    code: str
    message: str
    status: int
    details: Dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: ErrorBody


class ServerError(Exception):
    """
    Base exception for every error the API reports to a client.

    Usage:
        raise ServerError("entity-not-found", "Group not found")
        raise NotFound("Group not found")
    """
    code: str = "server-crash"

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if code is not None:
            self.code = code
        self.message = message or ERROR_MESSAGES.get(self.code, ERROR_MESSAGES["server-crash"])
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status(self) -> int:
        return ERROR_STATUSES.get(self.code, 500)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=ErrorBody(
                code=self.code,
                message=self.message,
                status=self.status,
                details=self.details,
            )
        )


class ImproperPayload(ServerError):
    code = "improper-payload"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class InvalidToken(ServerError):
    code = "invalid-token"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class NotAllowed(ServerError):
    """The actor lacks the privilege for the action."""
    code = "not-allowed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class NotFound(ServerError):
    """The resource is absent and the actor is entitled to know that."""
    code = "entity-not-found"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class AlreadyExists(ServerError):
    code = "entity-already-exists"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class ConflictingHistory(ServerError):
    """An attribute snapshot would break the ordering of its history."""
    code = "conflicting-history"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class InvalidRelationship(ServerError):
    """A stored membership record carries a role that is not recognised."""
    code = "invalid-relationship"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class TooManyRequests(ServerError):
    code = "too-many-requests"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)

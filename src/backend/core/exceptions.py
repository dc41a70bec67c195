"""
Domain exception hierarchy.

Every error the services raise derives from AppError and carries the HTTP
status it surfaces as. The global handlers in app.factory translate these
into the response envelope; nothing below knows about FastAPI.
"""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for all operational application errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        is_operational: bool = True,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.is_operational = is_operational
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication required"


class TokenExpiredError(AuthenticationError):
    default_message = "Token has expired"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid token"


class ForbiddenError(AppError):
    """Ownership or permission failure.

    ``context`` is for audit logging only and is never rendered to the caller.
    """

    status_code = 403
    default_message = "You do not have permission to access this resource"

    def __init__(self, message: Optional[str] = None, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class UpstreamServiceError(AppError):
    """A fatal failure caused by the external job platform."""

    status_code = 500
    default_message = "External service request failed"


class JobCreationError(UpstreamServiceError):
    default_message = "Failed to create job"


class JobUpdateError(UpstreamServiceError):
    default_message = "Failed to update job"


class JobDeletionError(UpstreamServiceError):
    default_message = "Failed to delete job"


class CompanyCreationError(UpstreamServiceError):
    default_message = "Failed to create customer account in ServiceM8"


class MalformedUpstreamResponseError(UpstreamServiceError):
    default_message = "ServiceM8 response did not contain a record identifier"


class BookingSyncError(UpstreamServiceError):
    default_message = "Failed to fetch bookings"

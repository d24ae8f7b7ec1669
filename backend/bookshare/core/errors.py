"""
Typed service errors.

Services raise these; the HTTP layer maps each one to its status code and
renders the ``{success, message}`` envelope.
"""
from fastapi import status


class ServiceError(Exception):
    """Base exception for all service-level failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class BadRequestError(ServiceError):
    """A state-dependent precondition failed (already hidden, already admin, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    """A referenced user, book or forum does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ServiceError):
    """The caller is authenticated but not allowed to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN


class InternalError(ServiceError):
    """Unexpected store or infrastructure failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

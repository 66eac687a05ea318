"""
Typed service errors.

Every error is an HTTPException so routes can let them propagate untouched,
while services and tests can still catch them by type.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class NotFoundError(ServiceError):
    status_code_default = status.HTTP_404_NOT_FOUND


class InvalidStateError(ServiceError):
    status_code_default = status.HTTP_409_CONFLICT


class ConflictError(ServiceError):
    status_code_default = status.HTTP_409_CONFLICT


class DuplicateError(ServiceError):
    status_code_default = status.HTTP_409_CONFLICT


class ValidationError(ServiceError):
    status_code_default = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ServiceError):
    """Actor lacks the role or ownership the operation requires."""

    status_code_default = status.HTTP_403_FORBIDDEN


class UnauthenticatedError(UnauthorizedError):
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: Any = "Could not validate credentials"):
        super().__init__(detail=detail, headers={"WWW-Authenticate": "Bearer"})


class RegistrationRejected(ServiceError):
    """Admission refused; detail carries a machine-readable reason code."""

    status_code_default = status.HTTP_409_CONFLICT

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(detail={"reason": reason, "message": message})

"""Custom exception classes and error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="AUTH_FAILED",
            message=message,
        )


class ForbiddenError(AppException):
    """Forbidden action - actor is not allowed to perform this action."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="FORBIDDEN",
            message=message,
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class InvalidStateError(AppException):
    """Transition attempted from a status that does not allow it."""

    def __init__(
        self,
        current_status: str,
        transition: str,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code="INVALID_STATE",
            message=f"Cannot {transition} a record in status '{current_status}'",
            details={"status": current_status, "transition": transition},
        )


class ConflictError(AppException):
    """Concurrent modification detected - caller should reload and retry."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
        expected_revision: int | None = None,
        current_revision: int | None = None,
    ):
        details: dict[str, Any] = {}
        if identifier:
            details["identifier"] = identifier
        if expected_revision is not None:
            details["expected_revision"] = expected_revision
        if current_revision is not None:
            details["current_revision"] = current_revision
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code="CONFLICT",
            message=f"{resource} was modified concurrently",
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"{resource} not found",
            details=details,
        )

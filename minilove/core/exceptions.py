"""
Application exception hierarchy.

Every error raised by services maps onto one HTTP status class:
400 validation/business rule, 401 authentication, 403 authorization,
404 missing resource, 409 conflict, 500 database failure.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """
    Base exception carrying an error code, a message and structured details.
    """

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code,
                "message": message,
                "details": self.details,
            },
            headers=headers,
        )


# ==================== Authentication (401) ====================


class AuthenticationException(AppException):
    """Base class for failures to establish who the caller is."""

    def __init__(
        self,
        error_code: str = "authentication_required",
        message: str = "Authentication credentials were not provided",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationException):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(error_code="invalid_credentials", message=message)


class TokenExpiredException(AuthenticationException):
    def __init__(self):
        super().__init__(
            error_code="token_expired",
            message="Access token has expired, please sign in again",
        )


class InvalidTokenException(AuthenticationException):
    def __init__(self):
        super().__init__(error_code="invalid_token", message="Invalid access token")


# ==================== Authorization (403) ====================


class PermissionDeniedException(AppException):
    """Caller is known but not allowed to perform the action."""

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        error_code: str = "permission_denied",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=error_code,
            message=message,
            details=details,
        )


class OwnershipRequiredException(PermissionDeniedException):
    def __init__(self, resource: str):
        super().__init__(
            message=f"Only the author can modify this {resource}",
            error_code="ownership_required",
            details={"resource": resource},
        )


class AccountDisabledException(PermissionDeniedException):
    def __init__(self):
        super().__init__(
            message="This account has been disabled", error_code="account_disabled"
        )


class InsufficientRoleException(PermissionDeniedException):
    def __init__(self, required_roles):
        super().__init__(
            message="Your membership level does not allow this action",
            error_code="insufficient_role",
            details={"required_roles": list(required_roles)},
        )


# ==================== Resources (404 / 409) ====================


class ResourceNotFoundException(AppException):
    """Raised when a requested resource does not exist or is not readable."""

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        details = {}
        if identifier is not None:
            details["identifier"] = str(identifier)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="resource_not_found",
            message=f"{resource} not found",
            details=details,
        )


class ResourceAlreadyExistsException(AppException):
    """Unique-field collision on create or update."""

    def __init__(self, resource: str, field: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_already_exists",
            message=f"{resource} already exists"
            if not field
            else f"{resource} with this {field} already exists",
            details=details,
        )


class ResourceConflictException(AppException):
    """The target is already in the requested state (liked, bookmarked, followed)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="resource_conflict",
            message=message,
            details=details,
        )


# ==================== Validation (400) ====================


class ValidationException(AppException):
    """Input failed a semantic check that shape validation cannot express."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: str = "validation_error",
    ):
        details = {}
        if field:
            details["field"] = field

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details,
        )


# ==================== Server (500) ====================


class DatabaseException(AppException):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="database_error",
            message=message,
        )

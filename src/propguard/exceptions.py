"""Unified exception hierarchy for propguard.

All errors inherit from PropGuardError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- HTTP status mapping for the API layer

Usage in callers:
    from propguard.exceptions import (
        PropGuardError,
        AccessDeniedError,
        get_http_status_code,
    )

Denials produced by the checker are values (SecurityCheckResult), not
exceptions. Exceptions are reserved for administrative mutations, data
access failures and the raising ``require_access`` helper.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "PropGuardError",
    "ConfigurationError",
    "StorageError",
    "DatabaseConnectionError",
    "SecurityError",
    "UnauthenticatedError",
    "AccessDeniedError",
    "ProfileError",
    "ProfileNotFoundError",
    "SystemProfileProtectedError",
    "ProfileInUseError",
    "DuplicateProfileError",
    "ObjectResolutionError",
    "ObjectNotFoundError",
    "UnknownObjectTypeError",
    "InvalidObjectTypeError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # HTTP helpers
    "get_http_status_code",
]


# ---- Exception Hierarchy ----------------------------------------------------


class PropGuardError(Exception):
    """Base exception for all propguard errors.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "PROFILE_IN_USE").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(PropGuardError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"
    message: str = "Invalid configuration"


class StorageError(PropGuardError):
    """Permission store or record lookup failure."""

    code: str = "STORAGE_ERROR"
    message: str = "Data access failed"


class DatabaseConnectionError(StorageError):
    """Failed to connect to the database."""

    code: str = "DB_CONNECTION_ERROR"
    message: str = "Could not connect to the database"


class SecurityError(PropGuardError):
    """Access-control failure raised on behalf of a denied check."""

    code: str = "SECURITY_ERROR"
    message: str = "Access denied"


class UnauthenticatedError(SecurityError):
    """No resolvable user or organization."""

    code: str = "UNAUTHENTICATED"
    message: str = "User not authenticated"


class AccessDeniedError(SecurityError):
    """A security check failed at one of the four levels.

    ``failed_level`` and ``denial_code`` mirror the SecurityCheckResult
    that produced the error.
    """

    code: str = "PERMISSION_DENIED"
    message: str = "Access denied"

    def __init__(
        self,
        message: str | None = None,
        *,
        failed_level: str | None = None,
        denial_code: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, failed_level=failed_level, denial_code=denial_code, **kwargs)
        self.failed_level = failed_level
        self.denial_code = denial_code


class ProfileError(PropGuardError):
    """Administrative profile lifecycle failure."""

    code: str = "PROFILE_ERROR"
    message: str = "Profile operation failed"


class ProfileNotFoundError(ProfileError):
    code: str = "PROFILE_NOT_FOUND"
    message: str = "Profile not found"


class SystemProfileProtectedError(ProfileError):
    """System profiles cannot be deleted or renamed."""

    code: str = "SYSTEM_PROFILE_PROTECTED"
    message: str = "System profiles cannot be deleted or renamed"


class ProfileInUseError(ProfileError):
    """Profile is still referenced by at least one user."""

    code: str = "PROFILE_IN_USE"
    message: str = "Profile is assigned to one or more users"


class DuplicateProfileError(ProfileError):
    code: str = "DUPLICATE_PROFILE"
    message: str = "A profile with this name already exists"


class ObjectResolutionError(PropGuardError):
    """Ownership resolution failure."""

    code: str = "OBJECT_RESOLUTION_ERROR"
    message: str = "Could not resolve object ownership"


class ObjectNotFoundError(ObjectResolutionError):
    """The target instance (or one of its parents) does not exist."""

    code: str = "OBJECT_NOT_FOUND"
    message: str = "Object not found"


class UnknownObjectTypeError(ObjectResolutionError):
    """Object type is not registered."""

    code: str = "UNKNOWN_OBJECT_TYPE"
    message: str = "Unknown object type"


class InvalidObjectTypeError(PropGuardError):
    """Object type key is not a valid identifier."""

    code: str = "INVALID_OBJECT_TYPE"
    message: str = "Invalid object type key"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[PropGuardError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[PropGuardError]] = {}

    def register(self, code: str, error_cls: type[PropGuardError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[PropGuardError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[PropGuardError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("QUOTA_EXCEEDED")
        class QuotaExceededError(PropGuardError):
            code = "QUOTA_EXCEEDED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
for _cls in (
    PropGuardError,
    ConfigurationError,
    StorageError,
    DatabaseConnectionError,
    SecurityError,
    UnauthenticatedError,
    AccessDeniedError,
    ProfileError,
    ProfileNotFoundError,
    SystemProfileProtectedError,
    ProfileInUseError,
    DuplicateProfileError,
    ObjectResolutionError,
    ObjectNotFoundError,
    UnknownObjectTypeError,
    InvalidObjectTypeError,
):
    error_registry.register(_cls.code, _cls)
del _cls


# ---- HTTP Status Mapping ----------------------------------------------------

_HTTP_STATUS: dict[str, int] = {
    "UNAUTHENTICATED": 401,
    "PERMISSION_DENIED": 403,
    "SECURITY_ERROR": 403,
    "SYSTEM_PROFILE_PROTECTED": 403,
    "PROFILE_NOT_FOUND": 404,
    "OBJECT_NOT_FOUND": 404,
    "UNKNOWN_OBJECT_TYPE": 404,
    "PROFILE_IN_USE": 409,
    "DUPLICATE_PROFILE": 409,
    "INVALID_OBJECT_TYPE": 422,
    "CONFIGURATION_ERROR": 500,
    "STORAGE_ERROR": 503,
    "DB_CONNECTION_ERROR": 503,
}


def get_http_status_code(error: PropGuardError) -> int:
    """Map a PropGuardError to the HTTP status the API layer should return.

    Unknown codes map to 500.
    """
    return _HTTP_STATUS.get(error.code, 500)

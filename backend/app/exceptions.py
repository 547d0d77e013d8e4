"""
PlantLog Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the JSON error envelope with the matching HTTP status code.
Who:   Raised by services, the auth dependency and the geometry helpers;
       caught by the global handlers.

Exception Hierarchy:
    PlantLogError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── AuthorizationError       → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 Internal Server Error
    └── ExternalServiceError     → 503 Service Unavailable
        ├── GeocodingError
        └── IdentityServiceError

Error envelope (every status):
    {
        "error": "scientific_name is required",
        "code": "validation_error",
        "details": {"field": "scientific_name"},
        "request_id": "a1b2c3d4"
    }
"""

from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError


class PlantLogError(Exception):
    """
    Base exception for all PlantLog application errors.

    Attributes:
        message:  User-facing error description (returned as `error`)
        context:  Additional debug info (returned as `details` for client
                  errors, logged only for server errors)
    """

    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlantLogError):
    """
    Raised when client input fails a business rule.

    When:  Required field missing, coordinate out of range, half a coordinate pair.
    HTTP:  400 Bad Request. Raised before any write happens.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(PlantLogError):
    """Missing, malformed, expired or wrongly signed bearer token. HTTP 401."""

    code = "unauthorized"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(PlantLogError):
    """The caller is authenticated but may not touch this record. HTTP 403."""

    code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to modify this record",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PlantLogError):
    """
    Raised when a lookup by identity matches nothing.

    HTTP:  404 Not Found, for every resource.
    """

    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(PlantLogError):
    """
    Raised when a database statement fails.

    HTTP:  500 Internal Server Error. The message carries the store's own
           error text so clients can surface it.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError, action: str) -> "DatabaseError":
        """
        Wraps a SQLAlchemy failure, keeping the driver message.

        DBAPIError.orig holds the driver exception; its text is shorter and
        free of the SQL statement that SQLAlchemy appends to str(exc).
        """
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            detail = str(exc.orig)
        else:
            detail = str(exc)
        return cls(
            message=f"Could not {action}: {detail}",
            context={"action": action, "error_type": type(exc).__name__},
        )


class ExternalServiceError(PlantLogError):
    """
    Raised when a managed third-party service fails.

    HTTP:  503 Service Unavailable. Never retried; the request fails as a unit.
    """

    code = "service_unavailable"

    def __init__(
        self,
        message: str = "An external service is unavailable",
        service: str = "external",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message=message, context=ctx)
        self.service = service


class GeocodingError(ExternalServiceError):
    """Reverse geocoding failed: token missing, transport error, or non-2xx reply."""

    def __init__(
        self,
        message: str = "Reverse geocoding failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, service="geocoding", context=context)


class IdentityServiceError(ExternalServiceError):
    """The identity provider's admin API rejected or failed a call."""

    def __init__(
        self,
        message: str = "Identity service request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, service="identity", context=context)

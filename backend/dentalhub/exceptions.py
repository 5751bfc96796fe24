"""
DentalHub Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for business-rule violations and
       storage failures.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    DentalHubError (base)
    ├── ValidationError   → 400 Bad Request (business-rule input error)
    ├── ForbiddenError    → 403 Forbidden (caller lacks rights)
    ├── NotFoundError     → 404 Not Found (a referenced entity is missing)
    ├── ConflictError     → 409 Conflict (uniqueness violation)
    └── DatabaseError     → 500 Internal Server Error

Convention:
    A missing *target* of an operation (the post being fetched, the case
    being deleted) is a falsy return value, never an exception. A missing
    *referenced* entity (the category of a new post, the parent post of a
    comment) raises NotFoundError. Forbidden always raises.
"""

from typing import Any, Dict, Optional


class DentalHubError(Exception):
    """
    Base exception for all DentalHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the
                  handler explicitly includes it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DentalHubError):
    """
    Raised when client input passes schema validation but breaks a business rule.

    When:    Unsupported case file extension, file size out of range,
             adding a case's creator as its collaborator.
    HTTP:    400 Bad Request

    Schema-level problems (missing fields, wrong types) never reach the
    services: FastAPI rejects them with 422.
    """

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


class NotFoundError(DentalHubError):
    """
    Raised when an entity referenced by the input does not exist.

    When:    Creating a post in a missing category, commenting on or voting
             for a missing post, adding a missing user as collaborator.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' does not exist"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(DentalHubError):
    """
    Raised when the caller is not allowed to perform the operation.

    When:    Non-author updating or deleting a forum post, viewing a private
             case without collaboration, editing a case as a viewer.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(DentalHubError):
    """
    Raised when an insert would violate a uniqueness rule.

    When:    Registering an email address that is already taken.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DentalHubError):
    """
    Raised when database operations fail unexpectedly.

    What:    A query, insert, or update failed inside SQLAlchemy or the driver.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The original
    error type and identifiers are kept in ``context`` and logged
    server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

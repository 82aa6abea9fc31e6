"""
RecipeBox Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions, one per HTTP failure class.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) render them into the
       `{success: false, message, error?}` envelope with the right status.
Who:   Raised by the Auth Gate, the QueryExecutor and route handlers.

Exception Hierarchy:
    RecipeBoxError (base)
    ├── ValidationError   → 400 Bad Request
    ├── AuthError         → 401 Unauthorized
    ├── NotFoundError     → 404 Not Found
    ├── ConflictError     → 409 Conflict
    └── DatabaseError     → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class RecipeBoxError(Exception):
    """
    Base exception for all RecipeBox application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only exposed for DatabaseError in dev)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecipeBoxError):
    """
    Raised when client input is missing or malformed.

    When:    Missing registration fields, empty profile update, blank password.
    HTTP:    400 Bad Request (FastAPI's 422 body errors are remapped to this too)
    """

    status_code = 400

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


class AuthError(RecipeBoxError):
    """
    Raised when the session carries no identity or a credential check fails.

    HTTP:    401 Unauthorized
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RecipeBoxError):
    """
    Raised when no row matches the requested key.

    The database returns None / zero affected rows for a missing record;
    handlers convert that into this exception.

    HTTP:    404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message or f"{resource} not found", context=ctx)


class ConflictError(RecipeBoxError):
    """
    Raised when a write collides with a unique key.

    When:    Duplicate username/email on register or profile update,
             adding a favorite that already exists.
    HTTP:    409 Conflict
    """

    status_code = 409

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(RecipeBoxError):
    """
    Raised when a statement fails for any reason other than a key conflict.

    What:    Connection loss, malformed statement, timeout.
    HTTP:    500 Internal Server Error

    The driver message is kept in `context["error"]`. The envelope only
    includes it when `settings.expose_error_details` is enabled.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Database error",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    @property
    def error(self) -> Optional[str]:
        return self.context.get("error")

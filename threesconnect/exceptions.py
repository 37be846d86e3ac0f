"""
3sConnect Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per error kind the API exposes.
Why:   Services raise them without knowing about HTTP; global handlers in
       main.py turn them into structured JSON responses with the right
       status code and a machine-checkable `error` kind.
How:   Each exception carries a user-facing message and an optional context
       dict. Context is logged server-side and never returned to callers.

Exception Hierarchy:
    ThreesConnectError (base)
    ├── ValidationError        → 400 validation_error
    ├── UnauthorizedError      → 401 unauthorized
    ├── ForbiddenError         → 403 forbidden
    ├── NotFoundError          → 404 not_found
    ├── UploadError            → 502 upload_error
    ├── IdentityProviderError  → 502 identity_provider_error
    └── InternalError          → 500 internal_error
"""

from typing import Any, Dict, Optional


class ThreesConnectError(Exception):
    """
    Base exception for all 3sConnect application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_code = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ThreesConnectError):
    """
    Raised when client input fails a business rule.

    When:    Empty post, empty or overlong comment, self-follow, bad image.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

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


class UnauthorizedError(ThreesConnectError):
    """No verified identity on a protected operation (401)."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(ThreesConnectError):
    """
    Raised when the actor does not own the record it tries to mutate.

    When:    Deleting someone else's post, comment or notification.
    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ThreesConnectError):
    """
    Raised when a referenced user, post, comment or notification does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so the handler can answer 404.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class UploadError(ThreesConnectError):
    """
    Raised when the media collaborator fails to store an image.

    HTTP:    502 Bad Gateway (the upstream storage failed, not the request)
    Effect:  Post creation is aborted before anything is written.
    """

    status_code = 502
    error_code = "upload_error"

    def __init__(
        self,
        message: str = "Failed to upload the image. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityProviderError(ThreesConnectError):
    """The identity provider could not return profile attributes (502)."""

    status_code = 502
    error_code = "identity_provider_error"

    def __init__(
        self,
        message: str = "Could not reach the identity provider. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InternalError(ThreesConnectError):
    """
    Raised when a store operation fails unexpectedly.

    Security Note:
        The message returned to the client is always generic. Details
        (statement, constraint, driver error) go to the server log only.
        The request transaction is rolled back, so the caller may retry.
    """

    status_code = 500
    error_code = "internal_error"

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

"""
Code Library Backend — Custom Exception Hierarchy
==================================================

What:  Application-specific exceptions for every failure the core can report.
How:   Each exception carries a public `message` and a private `context` dict.
       Global exception handlers (registered in main.py) map each class to an
       HTTP status and the `{"error": "<message>"}` envelope.
Who:   Raised by storage adapters, the snippet repository, the identity
       provider client and the bearer-token dependency.

Exception Hierarchy:
    CodeLibraryError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UpstreamAuthError        → 400 Bad Request (provider message passed through)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── StorageUnavailableError  → 500 Internal Server Error (generic message)
    ├── IdentityProviderError    → 500 Internal Server Error (generic message)
    └── OperationFailedError     → 500 Internal Server Error (per-operation message)
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class CodeLibraryError(Exception):
    """
    Base exception for all Code Library application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CodeLibraryError):
    """
    Raised when client input fails validation.

    When:    Missing/empty title, code or category on create; unknown category;
             missing sign-up fields; malformed request bodies.
    HTTP:    400 Bad Request
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


class NotFoundError(CodeLibraryError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE /snippets/{id} with an unknown id.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class AuthenticationError(CodeLibraryError):
    """
    Raised when the Authorization header is missing or not `Bearer <token>`.

    Only the header format is checked. The token itself is never verified.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Missing or malformed bearer token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageUnavailableError(CodeLibraryError):
    """
    Raised by a key-value adapter when the underlying store faults.

    The adapter never retries; the request fails and the next request starts
    from a clean slate.
    HTTP:    500 Internal Server Error (generic message, details logged)
    """

    def __init__(
        self,
        message: str = "Storage is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamAuthError(CodeLibraryError):
    """
    Raised when the identity provider rejects a sign-up (duplicate email,
    weak password, ...). The provider's message is returned to the client.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Identity provider rejected the request",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["provider_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class IdentityProviderError(CodeLibraryError):
    """
    Raised when the identity provider cannot be reached or is not configured.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Identity provider is unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OperationFailedError(CodeLibraryError):
    """
    Wraps an unexpected fault raised inside a route's failure boundary.

    The message names the operation ("Failed to create snippet") and never
    includes the original exception text.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# Client-correctable errors pass through a failure boundary untouched.
PASSTHROUGH_ERRORS = (
    ValidationError,
    NotFoundError,
    AuthenticationError,
    UpstreamAuthError,
)


@contextmanager
def failure_boundary(operation_message: str) -> Iterator[None]:
    """
    Single try/fail boundary wrapped around each route handler body.

    Validation, not-found, auth and upstream-auth errors propagate unchanged.
    Every other exception, server-side CodeLibraryErrors included, is logged
    with its traceback and re-raised as OperationFailedError carrying
    `operation_message`.

    Usage:
        with failure_boundary("Failed to create snippet"):
            snippet = await repository.create(payload)
    """
    try:
        yield
    except PASSTHROUGH_ERRORS:
        raise
    except Exception as e:
        context = getattr(e, "context", {}) or {}
        logger.error(
            "%s: %s | Context: %s",
            operation_message,
            type(e).__name__,
            context,
            exc_info=True,
        )
        raise OperationFailedError(
            message=operation_message,
            context={"original_error": type(e).__name__, **context},
        ) from e

"""
A+ Marketplace Backend — Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions for the marketplace's error scenarios.
How:   Each exception carries a localized message (resolved from a message
       code through `aplus.messages`), the code itself, public `params` that
       are safe to return to the client, and a private `context` dict that is
       only logged. Global handlers in main.py turn them into JSON responses
       using the class's `status_code` and `error_type`.
Who:   Raised by services, the auth guard and middleware; caught by handlers.

Exception Hierarchy:
    AplusError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden (ownership / role mismatch)
    ├── NotFoundError            → 404 Not Found
    ├── InvalidStateError        → 409 Conflict (business rule violated)
    │   └── DuplicateRecordError → 409 Conflict (unique constraint rejected)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── PaymentGatewayError      → 502 Bad Gateway
    └── CircuitBreakerOpenError  → 503 Service Unavailable
"""

from typing import Any, Dict, Optional

from aplus.messages import translate


class AplusError(Exception):
    """
    Base exception for all marketplace errors.

    Attributes:
        message:  User-facing description (safe to return in API response)
        code:     Stable message code, returned as `details.code`
        params:   Values interpolated into the message; returned in `details`
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_type = "server_error"
    default_code = "error.unexpected"

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        **params: Any,
    ):
        self.code = code or self.default_code
        self.params = params
        self.message = message or translate(self.code, **params)
        self.context = context or {}
        super().__init__(self.message)

    @property
    def details(self) -> Dict[str, Any]:
        """Public error details: the message code plus its parameters."""
        return {"code": self.code, **{k: str(v) for k, v in self.params.items()}}


class ValidationError(AplusError):
    """
    Raised when client input fails a business validation rule.

    Schema-level problems are already answered with 422 by FastAPI; this is
    for checks that need data (file content, amount ranges, answer options).
    """

    status_code = 400
    error_type = "validation_error"
    default_code = "error.validation"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        **params: Any,
    ):
        if field:
            params["field"] = field
        super().__init__(message=message, context=context, code=code, **params)
        self.field = field


class AuthenticationError(AplusError):
    """Missing, malformed or expired bearer token, or an unknown caller."""

    status_code = 401
    error_type = "unauthorized"
    default_code = "auth.invalid_token"


class PermissionDeniedError(AplusError):
    """
    The caller is authenticated but does not own the resource or lacks the
    admin role required by the operation.
    """

    status_code = 403
    error_type = "forbidden"
    default_code = "auth.forbidden"


class NotFoundError(AplusError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into this
    exception so routes never deal with None.
    """

    status_code = 404
    error_type = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        code = f"{resource}.not_found"
        message = translate(code)
        if message == code:
            message = translate("resource.not_found", resource=resource)
        super().__init__(message=message, context=ctx, code=code)
        self.resource = resource
        self.resource_id = resource_id


class InvalidStateError(AplusError):
    """
    The request is well-formed but conflicts with current state: buying your
    own note, buying twice, an illegal withdrawal transition, an insufficient
    balance, a second rating.
    """

    status_code = 409
    error_type = "invalid_state"
    default_code = "record.duplicate"


class DuplicateRecordError(InvalidStateError):
    """Raised by `flush_or_conflict` when a unique constraint rejects a write."""

    error_type = "duplicate_record"


class RateLimitExceededError(AplusError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    The handler also sets a `Retry-After` header.
    """

    status_code = 429
    error_type = "rate_limit_exceeded"
    default_code = "error.rate_limited"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(context=context, retry_after=retry_after)
        self.retry_after = retry_after


class FileStorageError(AplusError):
    """Could not read, write, or delete a file on the storage volume."""

    status_code = 500
    error_type = "server_error"
    default_code = "error.file_storage"


class DatabaseError(AplusError):
    """
    A database operation failed unexpectedly.

    The client always receives a generic message; the context (statement,
    constraint name) is logged server-side only.
    """

    status_code = 500
    error_type = "server_error"
    default_code = "error.database"


class PaymentGatewayError(AplusError):
    """The payment gateway rejected a request or failed after all retries."""

    status_code = 502
    error_type = "payment_gateway_error"
    default_code = "error.payment_gateway"


class CircuitBreakerOpenError(AplusError):
    """
    Raised when the payment gateway circuit breaker is OPEN.

    CLOSED → failures counted → OPEN after cb_failure_threshold failures →
    HALF-OPEN after cb_recovery_timeout → CLOSED once the trial call gets
    any answer from the gateway, including a 4xx.
    """

    status_code = 503
    error_type = "service_unavailable"
    default_code = "error.gateway_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(context=context, recovery_time=recovery_time)
        self.recovery_time = recovery_time

"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent `{success, error, error_code}` responses across the API
- Machine-readable error codes for client handling
- A single place that decides which HTTP status an error maps to

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures (400)
    ├── AuthenticationError - Caller/webhook could not be authenticated (401)
    ├── PermissionDeniedError - Authorization failures (403)
    ├── NotFoundError - Resource not found (404)
    ├── ConflictError - State conflicts (409)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Amount must be positive", error_code="INVALID_AMOUNT")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=exception_status(e))

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, identifiers, etc.)
        http_status: Status code used when the error crosses an HTTP boundary

    Example:
        try:
            wallet = WalletLedger.get_wallet_for_host(host_id)
        except NotFoundError as e:
            logger.warning(f"Wallet not found: {e.error_code}")
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the stable API error shape.

        Details are intentionally left out: they carry internal identifiers
        that are useful in logs but not for clients.

        Returns:
            Dict with success, error and error_code keys

        Example:
            {
                "success": False,
                "error": "Session not found",
                "error_code": "SESSION_NOT_FOUND",
            }
        """
        return {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
        }

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Missing required fields
    - Out-of-range values (negative amounts, scores above 100)
    - Business rule violations (amount below the withdrawal minimum)

    Never retried automatically.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class AuthenticationError(BaseApplicationError):
    """
    Raised when the origin of a request cannot be authenticated.

    For webhooks this means the gateway signature did not verify. The
    payload must not be processed and no state may change.
    """

    default_error_code: str = "AUTHENTICATION_FAILED"
    http_status: int = 401


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller lacks permission for an operation.

    Example:
        if session.seeker_id != user.id and not user.is_staff:
            raise PermissionDeniedError(
                "Only the seeker can rate this session",
                error_code="NOT_SESSION_SEEKER",
            )
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        session = Session.objects.filter(id=session_id).first()
        if not session:
            raise NotFoundError(
                f"Session {session_id} not found",
                error_code="SESSION_NOT_FOUND",
                details={"session_id": str(session_id)}
            )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Optimistic locking failures
    - Contended distributed locks

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment gateway failures (order or payout creation)
    - Network timeouts
    - Unexpected gateway responses

    Note:
        Log the original error for debugging but don't expose
        internal details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502


def exception_status(exc: Exception) -> int:
    """
    HTTP status for an exception crossing an HTTP boundary.

    Application errors carry their own status; anything else is an
    internal failure.
    """
    if isinstance(exc, BaseApplicationError):
        return exc.http_status
    return 500

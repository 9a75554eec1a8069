"""
Payment-specific exceptions for escrow operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Bad input (also a core ValidationError, 400)
    ├── PaymentNotFoundError - Session/wallet/payout lookup failures (404)
    ├── WebhookAuthenticationError - Gateway signature did not verify (401)
    ├── InsufficientFundsError - Balance precondition failed (400)
    ├── GatewayError - External gateway call failed (502)
    └── InvariantViolationError - Internal consistency check failed (500)

    InvalidStateTransitionError - Illegal lifecycle transition (inherits ConflictError)
    └── AlreadyCompletedError - Session already completed
    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)

Usage:
    from payments.exceptions import InsufficientFundsError

    raise InsufficientFundsError(
        wallet_id=wallet.id,
        balance_field="withdrawal_balance",
        required=amount,
        available=wallet.withdrawal_balance,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    AuthenticationError,
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    import uuid
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError, ValidationError):
    """
    Raised when payment input validation fails.

    Use for:
    - Non-positive amounts
    - Satisfaction scores outside [0, 100]
    - Unsupported currencies or gateways
    - Amount below the per-currency withdrawal minimum
    - Payout destination not linked or not verified

    Example:
        if amount <= 0:
            raise PaymentValidationError(
                "Payout amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"amount": amount},
            )
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"
    http_status: int = 400


class PaymentNotFoundError(PaymentError, NotFoundError):
    """
    Raised when a payment entity cannot be found.

    Use for:
    - Session lookup by id or gateway order id fails
    - Wallet lookup for a host fails
    - Payout lookup fails
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class WebhookAuthenticationError(PaymentError, AuthenticationError):
    """
    Raised when an inbound webhook fails signature verification.

    The caller must respond 401 and must not look at the payload.
    """

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"
    http_status: int = 401


class InsufficientFundsError(PaymentError):
    """
    Raised when a wallet balance cannot cover a debit.

    On the payout path this is an ordinary rejection. On internal paths
    (penalty adjustment, settlement release) it means the ledger is
    inconsistent and is logged as critical by the wallet ledger.

    Attributes:
        wallet_id: The wallet that could not be debited (None if unknown)
        balance_field: Which balance was checked
        required: Amount (minor units) that was required
        available: Amount (minor units) that was available
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"
    http_status: int = 400

    def __init__(
        self,
        wallet_id: uuid.UUID | None,
        balance_field: str,
        required: int,
        available: int | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.wallet_id = wallet_id
        self.balance_field = balance_field
        self.required = required
        self.available = available

        message = f"Insufficient {balance_field.replace('_', ' ')}"

        full_details = {
            "wallet_id": str(wallet_id) if wallet_id else None,
            "balance_field": balance_field,
            "required": required,
            "available": available,
        }
        if details:
            full_details.update(details)

        super().__init__(message=message, error_code=error_code, details=full_details)


class GatewayError(PaymentError, ExternalServiceError):
    """
    Raised when a payment gateway call fails.

    No local state is mutated before a gateway call, so a GatewayError
    always leaves the ledger untouched.

    Attributes:
        gateway: Which gateway failed
        is_retryable: Whether the failure is transient (timeouts, 5xx, 429)
        status_code: HTTP status returned by the gateway, if any

    Example:
        except GatewayError as e:
            if e.is_retryable:
                raise self.retry(exc=e, countdown=backoff_delay(self.request.retries))
    """

    default_error_code: str = "GATEWAY_ERROR"
    http_status: int = 502

    def __init__(
        self,
        message: str,
        gateway: str | None = None,
        is_retryable: bool = False,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway:
            details["gateway"] = gateway
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, error_code=error_code, details=details)
        self.gateway = gateway
        self.is_retryable = is_retryable
        self.status_code = status_code


class InvariantViolationError(PaymentError):
    """
    Raised when an internal consistency check fails.

    Examples: a balance would go negative, a write-once Transaction is
    updated, final shares do not add up to the amount paid.

    Always logged as critical. Halts only the affected operation.
    """

    default_error_code: str = "INVARIANT_VIOLATION"
    http_status: int = 500


# =============================================================================
# State & Concurrency Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a session or payout transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with our standard error format.

    Example:
        try:
            session.complete()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot complete session from '{session.status}'",
                details={"current_state": session.status, "transition": "complete"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class AlreadyCompletedError(InvalidStateTransitionError):
    """
    Raised when completing a session that is already COMPLETED.

    Never treated as success: a second satisfaction submission must not
    silently overwrite the finalized split.
    """

    default_error_code: str = "SESSION_ALREADY_COMPLETED"


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    Attributes:
        details: Contains pk, expected_version, and current_version
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Example:
        with DistributedLock(f"payout:wallet:{wallet.id}", ttl=60, timeout=5):
            ...  # raises LockAcquisitionError if another request holds it
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


__all__ = [
    "AlreadyCompletedError",
    "GatewayError",
    "InsufficientFundsError",
    "InvalidStateTransitionError",
    "InvariantViolationError",
    "LockAcquisitionError",
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "StaleRecordError",
    "WebhookAuthenticationError",
]

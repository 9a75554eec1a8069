"""
Shared building blocks for gateway adapters.

- OrderResult / PayoutResult: what the escrow engine needs back from a gateway
- IdempotencyKeyGenerator: stable keys for gateway-side deduplication
- backoff_delay / is_retryable_gateway_error: retry helpers for Celery tasks
- GatewayHttpAdapter: requests-based HTTP call with timing logs and
  translation of transport/HTTP failures into GatewayError
"""

from __future__ import annotations

import hashlib
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import requests
from django.conf import settings

from payments.exceptions import GatewayError

RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429, 500, 502, 503, 504})


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateOrderParams:
    """
    Parameters for creating a gateway order for a session purchase.

    Attributes:
        amount: Order amount in minor units
        currency: ISO 4217 code
        receipt: Our reference for the order (shown in gateway dashboards)
        idempotency_key: Unique key for idempotent creation
        description: Buyer-facing description
    """

    amount: int
    currency: str
    receipt: str
    idempotency_key: str
    description: str = "Global Social Credits"

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.currency:
            raise ValueError("currency is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class CreatePayoutParams:
    """
    Parameters for sending money to a host's linked account.

    Attributes:
        amount: Payout amount in minor units
        currency: ISO 4217 code
        destination: Razorpay linked account id or PayPal receiver email
        idempotency_key: Unique key for idempotent creation
        note: Note shown to the receiver
    """

    amount: int
    currency: str
    destination: str
    idempotency_key: str
    note: str = ""

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.destination:
            raise ValueError("destination is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class OrderResult:
    """
    Result of creating a gateway order.

    Attributes:
        id: Gateway order id (order_xxx for Razorpay, PayPal order id)
        status: Gateway-reported status
        amount: Amount in minor units
        currency: ISO 4217 code
        approval_url: Where to send the buyer, when the gateway has one
        raw_response: Full gateway response (for debugging)
    """

    id: str
    status: str
    amount: int
    currency: str
    approval_url: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class PayoutResult:
    """
    Result of creating a gateway payout.

    Attributes:
        id: Gateway payout id (Razorpay transfer id, PayPal payout batch id)
        status: Gateway-reported status
        amount: Amount in minor units
        currency: ISO 4217 code
        raw_response: Full gateway response
    """

    id: str
    status: str
    amount: int
    currency: str
    raw_response: dict[str, Any] = field(default_factory=dict)


def to_major_units(amount: int) -> str:
    """9900 -> '99.00'. Both supported currencies use two decimals."""
    return str((Decimal(amount) / 100).quantize(Decimal("0.01")))


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for gateway calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate("payout", wallet.id, attempt=1)
        # "payout:7c1e...:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_gateway_error(error: Exception) -> bool:
    """
    Whether a Celery task may retry after this error.

        except Exception as e:
            if is_retryable_gateway_error(e):
                raise self.retry(exc=e, countdown=backoff_delay(self.request.retries))
            raise
    """
    if isinstance(error, GatewayError):
        return error.is_retryable
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Exponential backoff with 0-25% jitter.

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


# =============================================================================
# HTTP Adapter Base
# =============================================================================


class GatewayHttpAdapter:
    """
    Base for requests-based gateway adapters.

    Subclasses set `gateway` and call `_request()`; every failure comes
    back as GatewayError with is_retryable set for transient problems.
    """

    gateway: str = ""

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def timeout(cls) -> int:
        return settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    @classmethod
    def _request(
        cls,
        method: str,
        url: str,
        log_context: dict[str, Any],
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform an HTTP call and return the decoded JSON body.

        Raises:
            GatewayError: Transport failure, non-2xx status or non-JSON body
        """
        logger = cls.get_logger()
        kwargs.setdefault("timeout", cls.timeout())

        start_time = time.time()
        logger.info("Starting gateway operation", extra=log_context)

        try:
            response = requests.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_http_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Gateway operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return data

    @classmethod
    def _handle_http_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate requests exceptions into GatewayError.

        Raises:
            GatewayError: Always
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, requests.Timeout):
            logger.warning("Gateway request timed out", extra=log_context)
            raise GatewayError(
                f"{cls.gateway} request timed out",
                gateway=cls.gateway,
                is_retryable=True,
                error_code="GATEWAY_TIMEOUT",
            ) from error

        if isinstance(error, requests.ConnectionError):
            logger.error("Could not connect to gateway", extra=log_context, exc_info=True)
            raise GatewayError(
                f"Could not connect to {cls.gateway}",
                gateway=cls.gateway,
                is_retryable=True,
                error_code="GATEWAY_UNAVAILABLE",
            ) from error

        if isinstance(error, requests.HTTPError):
            status_code = error.response.status_code if error.response is not None else None
            retryable = status_code in RETRYABLE_STATUS_CODES
            logger.error(
                "Gateway returned an error status",
                extra={**log_context, "status_code": status_code},
            )
            raise GatewayError(
                f"{cls.gateway} rejected the request",
                gateway=cls.gateway,
                is_retryable=retryable,
                status_code=status_code,
                error_code="GATEWAY_REJECTED" if not retryable else "GATEWAY_UNAVAILABLE",
            ) from error

        if isinstance(error, ValueError):
            logger.error("Gateway returned a non-JSON body", extra=log_context)
            raise GatewayError(
                f"Unexpected response from {cls.gateway}",
                gateway=cls.gateway,
                error_code="GATEWAY_BAD_RESPONSE",
            ) from error

        logger.error(
            f"Unexpected gateway error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise GatewayError(
            f"Unexpected error calling {cls.gateway}",
            gateway=cls.gateway,
            error_code="GATEWAY_ERROR",
        ) from error

    @classmethod
    def _require(cls, data: dict[str, Any], key: str, log_context: dict[str, Any]) -> Any:
        value = data.get(key)
        if not value:
            cls.get_logger().error(
                "Gateway response missing field",
                extra={**log_context, "field": key},
            )
            raise GatewayError(
                f"Unexpected response from {cls.gateway}",
                gateway=cls.gateway,
                error_code="GATEWAY_BAD_RESPONSE",
            )
        return value

    @classmethod
    def _ensure_configured(cls, *values: str) -> None:
        if not all(values):
            raise GatewayError(
                f"{cls.gateway} credentials are not configured",
                gateway=cls.gateway,
                error_code="GATEWAY_NOT_CONFIGURED",
            )

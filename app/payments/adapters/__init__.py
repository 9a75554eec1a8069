"""
Payment gateway adapters.

All Razorpay and PayPal API calls go through these adapters so timeouts,
idempotency keys, logging and error translation stay consistent.

Usage:
    from payments.adapters import CreateOrderParams, get_adapter

    order = get_adapter("razorpay").create_order(
        CreateOrderParams(amount=9900, currency="INR", receipt="r1", idempotency_key=key)
    )
"""

from payments.adapters.base import (
    CreateOrderParams,
    CreatePayoutParams,
    GatewayHttpAdapter,
    IdempotencyKeyGenerator,
    OrderResult,
    PayoutResult,
    backoff_delay,
    is_retryable_gateway_error,
)
from payments.adapters.paypal_adapter import PayPalAdapter
from payments.adapters.razorpay_adapter import RazorpayAdapter
from payments.state_machines import PaymentGateway

ADAPTERS: dict[str, type[GatewayHttpAdapter]] = {
    PaymentGateway.RAZORPAY: RazorpayAdapter,
    PaymentGateway.PAYPAL: PayPalAdapter,
}


def get_adapter(gateway: str) -> type[GatewayHttpAdapter]:
    """
    Raises:
        ValueError: Unsupported gateway
    """
    try:
        return ADAPTERS[gateway]
    except KeyError:
        raise ValueError(f"Unsupported gateway '{gateway}'") from None


__all__ = [
    "ADAPTERS",
    "CreateOrderParams",
    "CreatePayoutParams",
    "GatewayHttpAdapter",
    "IdempotencyKeyGenerator",
    "OrderResult",
    "PayPalAdapter",
    "PayoutResult",
    "RazorpayAdapter",
    "backoff_delay",
    "get_adapter",
    "is_retryable_gateway_error",
]

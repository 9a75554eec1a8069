"""
Razorpay REST adapter.

Orders are created with the Orders API and payouts are sent as Route
transfers to the host's linked account. Both authenticate with HTTP
basic auth (key id / key secret).

Configuration (via settings):
- RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET: API credentials
- RAZORPAY_API_BASE: API root (default: https://api.razorpay.com/v1)
- PAYMENT_GATEWAY_TIMEOUT_SECONDS: HTTP timeout

Usage:
    from payments.adapters import CreateOrderParams, RazorpayAdapter

    order = RazorpayAdapter.create_order(
        CreateOrderParams(
            amount=9900,
            currency="INR",
            receipt="seeker-42",
            idempotency_key=key,
        )
    )
"""

from __future__ import annotations

from django.conf import settings

from payments.adapters.base import (
    CreateOrderParams,
    CreatePayoutParams,
    GatewayHttpAdapter,
    OrderResult,
    PayoutResult,
)
from payments.state_machines import PaymentGateway


class RazorpayAdapter(GatewayHttpAdapter):
    """
    Adapter for Razorpay API operations.

    All methods are classmethods - no instance state is maintained.
    """

    gateway = PaymentGateway.RAZORPAY

    @classmethod
    def _auth(cls) -> tuple[str, str]:
        cls._ensure_configured(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
        return settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET

    @classmethod
    def _url(cls, path: str) -> str:
        return f"{settings.RAZORPAY_API_BASE.rstrip('/')}/{path}"

    @classmethod
    def create_order(cls, params: CreateOrderParams) -> OrderResult:
        """
        Create a Razorpay order.

        Raises:
            GatewayError: Credentials missing or Razorpay call failed
        """
        log_context = {
            "operation": "razorpay.create_order",
            "amount": params.amount,
            "currency": params.currency,
            "receipt": params.receipt,
        }
        data = cls._request(
            "POST",
            cls._url("orders"),
            log_context,
            auth=cls._auth(),
            json={
                "amount": params.amount,
                "currency": params.currency,
                "receipt": params.receipt,
                "notes": {
                    "description": params.description,
                    "idempotency_key": params.idempotency_key,
                },
            },
        )
        order_id = cls._require(data, "id", log_context)
        return OrderResult(
            id=order_id,
            status=data.get("status", "created"),
            amount=int(data.get("amount", params.amount)),
            currency=data.get("currency", params.currency),
            raw_response=data,
        )

    @classmethod
    def create_payout(cls, params: CreatePayoutParams) -> PayoutResult:
        """
        Transfer funds to a linked account.

        Raises:
            GatewayError: Credentials missing or Razorpay call failed
        """
        log_context = {
            "operation": "razorpay.create_payout",
            "amount": params.amount,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
        }
        data = cls._request(
            "POST",
            cls._url("transfers"),
            log_context,
            auth=cls._auth(),
            headers={"X-Payout-Idempotency": params.idempotency_key},
            json={
                "account": params.destination,
                "amount": params.amount,
                "currency": params.currency,
                "notes": {
                    "note": params.note,
                    "idempotency_key": params.idempotency_key,
                },
            },
        )
        transfer_id = cls._require(data, "id", log_context)
        return PayoutResult(
            id=transfer_id,
            status=data.get("status", "processing"),
            amount=int(data.get("amount", params.amount)),
            currency=data.get("currency", params.currency),
            raw_response=data,
        )

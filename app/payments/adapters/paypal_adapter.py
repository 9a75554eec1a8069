"""
PayPal REST adapter.

Orders use the Checkout v2 API with intent CAPTURE; payouts use the
Payouts v1 API with one item per batch. An OAuth client-credentials
token is fetched on demand and kept in the Django cache until shortly
before it expires.

Configuration (via settings):
- PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET: API credentials
- PAYPAL_API_BASE: API root (sandbox by default)
- PAYMENT_GATEWAY_TIMEOUT_SECONDS: HTTP timeout
"""

from __future__ import annotations

import hashlib

from django.conf import settings
from django.core.cache import cache

from payments.adapters.base import (
    CreateOrderParams,
    CreatePayoutParams,
    GatewayHttpAdapter,
    OrderResult,
    PayoutResult,
    to_major_units,
)
from payments.state_machines import PaymentGateway

TOKEN_CACHE_PREFIX = "paypal:access-token:"
# Refresh this many seconds before PayPal says the token expires
TOKEN_EXPIRY_MARGIN = 60


class PayPalAdapter(GatewayHttpAdapter):
    """
    Adapter for PayPal API operations.

    All methods are classmethods - no instance state is maintained.
    """

    gateway = PaymentGateway.PAYPAL

    @classmethod
    def _url(cls, path: str) -> str:
        return f"{settings.PAYPAL_API_BASE.rstrip('/')}/{path}"

    @classmethod
    def _token_cache_key(cls) -> str:
        client = hashlib.sha256(settings.PAYPAL_CLIENT_ID.encode()).hexdigest()[:16]
        return TOKEN_CACHE_PREFIX + client

    @classmethod
    def get_access_token(cls) -> str:
        """
        Return a cached OAuth token, requesting a new one when needed.

        Raises:
            GatewayError: Credentials missing or token request failed
        """
        cls._ensure_configured(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET)

        cache_key = cls._token_cache_key()
        token = cache.get(cache_key)
        if token:
            return token

        log_context = {"operation": "paypal.oauth_token"}
        data = cls._request(
            "POST",
            cls._url("v1/oauth2/token"),
            log_context,
            auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )
        token = cls._require(data, "access_token", log_context)
        expires_in = int(data.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN
        if expires_in > 0:
            cache.set(cache_key, token, expires_in)
        return token

    @classmethod
    def _headers(cls, idempotency_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {cls.get_access_token()}",
            "Content-Type": "application/json",
            "PayPal-Request-Id": idempotency_key,
        }

    @classmethod
    def create_order(cls, params: CreateOrderParams) -> OrderResult:
        """
        Create a PayPal checkout order.

        Raises:
            GatewayError: Credentials missing or PayPal call failed
        """
        log_context = {
            "operation": "paypal.create_order",
            "amount": params.amount,
            "currency": params.currency,
            "receipt": params.receipt,
        }
        data = cls._request(
            "POST",
            cls._url("v2/checkout/orders"),
            log_context,
            headers=cls._headers(params.idempotency_key),
            json={
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "reference_id": params.receipt,
                        "description": params.description,
                        "amount": {
                            "currency_code": params.currency,
                            "value": to_major_units(params.amount),
                        },
                    }
                ],
            },
        )
        order_id = cls._require(data, "id", log_context)

        approval_url = None
        for link in data.get("links", []):
            if link.get("rel") in ("approve", "payer-action"):
                approval_url = link.get("href")
                break

        return OrderResult(
            id=order_id,
            status=data.get("status", "CREATED"),
            amount=params.amount,
            currency=params.currency,
            approval_url=approval_url,
            raw_response=data,
        )

    @classmethod
    def create_payout(cls, params: CreatePayoutParams) -> PayoutResult:
        """
        Send a single-item payout batch to a PayPal email.

        Returns:
            PayoutResult whose id is the payout batch id

        Raises:
            GatewayError: Credentials missing or PayPal call failed
        """
        log_context = {
            "operation": "paypal.create_payout",
            "amount": params.amount,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
        }
        # sender_batch_id is PayPal's own dedup key and is limited to 256 chars
        sender_batch_id = hashlib.sha256(params.idempotency_key.encode()).hexdigest()
        data = cls._request(
            "POST",
            cls._url("v1/payments/payouts"),
            log_context,
            headers=cls._headers(params.idempotency_key),
            json={
                "sender_batch_header": {
                    "sender_batch_id": sender_batch_id,
                    "email_subject": params.note,
                },
                "items": [
                    {
                        "recipient_type": "EMAIL",
                        "receiver": params.destination,
                        "note": params.note,
                        "sender_item_id": sender_batch_id[:32],
                        "amount": {
                            "currency": params.currency,
                            "value": to_major_units(params.amount),
                        },
                    }
                ],
            },
        )
        batch_header = data.get("batch_header") or {}
        batch_id = cls._require(batch_header, "payout_batch_id", log_context)
        return PayoutResult(
            id=batch_id,
            status=batch_header.get("batch_status", "PENDING"),
            amount=params.amount,
            currency=params.currency,
            raw_response=data,
        )

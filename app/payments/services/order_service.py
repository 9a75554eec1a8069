"""
Order creation for session purchases.

The seeker picks a host, session type, gateway and currency; the price
comes from CREDIT_PRICES. The gateway order is created first and the
session row only afterwards, so a GatewayError leaves nothing behind.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth import get_user_model

from core.services import BaseService

from payments.adapters import CreateOrderParams, GatewayHttpAdapter, IdempotencyKeyGenerator, get_adapter
from payments.exceptions import PaymentNotFoundError, PaymentValidationError
from payments.ledger import SessionLedger, WalletLedger
from payments.models import Session
from payments.state_machines import PaymentGateway, SessionType

ORDER_DESCRIPTION = "Global Social Credits"


@dataclass
class OrderCreationResult:
    """
    Attributes:
        session: The new session, awaiting payment
        approval_url: Where to redirect the seeker (PayPal only)
    """

    session: Session
    approval_url: str | None = None


class OrderService(BaseService):
    """Creates gateway orders and the sessions that track them."""

    _adapter: type | None = None

    @classmethod
    def get_adapter(cls, gateway: str) -> type[GatewayHttpAdapter]:
        return cls._adapter or get_adapter(gateway)

    @classmethod
    def set_adapter(cls, adapter: type | None) -> None:
        cls._adapter = adapter

    @classmethod
    def price_for(cls, currency: str) -> int:
        try:
            return settings.CREDIT_PRICES[currency]
        except KeyError:
            raise PaymentValidationError(
                f"Currency {currency} is not supported",
                error_code="UNSUPPORTED_CURRENCY",
                details={"currency": currency},
            ) from None

    @classmethod
    def create_order(
        cls,
        seeker_id: int,
        host_id: int,
        session_type: str,
        gateway: str,
        currency: str | None = None,
    ) -> OrderCreationResult:
        """
        Create a gateway order and a session awaiting its capture.

        Raises:
            PaymentValidationError: Unknown session type, gateway or
                currency, host is not a host account, or the host wallet
                holds another currency
            PaymentNotFoundError: Host does not exist
            GatewayError: Gateway order creation failed
        """
        currency = (currency or settings.DEFAULT_CURRENCY).upper()

        if session_type not in SessionType.values:
            raise PaymentValidationError(
                f"Unknown session type '{session_type}'",
                error_code="INVALID_SESSION_TYPE",
            )
        if gateway not in PaymentGateway.values:
            raise PaymentValidationError(
                f"Unsupported gateway '{gateway}'",
                error_code="INVALID_GATEWAY",
            )

        User = get_user_model()
        host = User.objects.filter(pk=host_id, is_active=True).first()
        if host is None:
            raise PaymentNotFoundError(
                f"Host {host_id} not found",
                error_code="HOST_NOT_FOUND",
                details={"host_id": host_id},
            )
        if not host.is_host:
            raise PaymentValidationError(
                "Selected user does not host sessions",
                error_code="NOT_A_HOST",
            )

        amount = cls.price_for(currency)
        WalletLedger.check_currency(host.id, currency)
        receipt = uuid.uuid4().hex[:20]

        order = cls.get_adapter(gateway).create_order(
            CreateOrderParams(
                amount=amount,
                currency=currency,
                receipt=receipt,
                idempotency_key=IdempotencyKeyGenerator.generate("order", receipt),
                description=ORDER_DESCRIPTION,
            )
        )

        session = SessionLedger.create_session(
            seeker_id=seeker_id,
            host_id=host.id,
            session_type=session_type,
            amount=amount,
            currency=currency,
            gateway=gateway,
            gateway_order_id=order.id,
        )

        cls.get_logger().info(
            "Order created",
            extra={
                "session_id": str(session.id),
                "gateway": gateway,
                "gateway_order_id": order.id,
                "amount": amount,
                "currency": currency,
            },
        )
        return OrderCreationResult(session=session, approval_url=order.approval_url)

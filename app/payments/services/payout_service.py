"""
Payout service for moving a host's withdrawable balance to their linked account.

request_payout() runs its checks in a fixed order and mutates nothing
until the gateway has accepted the payout:

1. amount > 0
2. wallet exists
3. withdrawal_balance covers the amount
4. amount meets the per-currency minimum
5. the chosen method has a linked/verified destination
6. gateway create_payout (GatewayError propagates, nothing written)
7. one transaction: Payout(PROCESSING) + wallet debit + PAYOUT transaction

Steps 3-7 run under a per-wallet distributed lock so two requests cannot
both pass the balance check.

If step 7 fails after the gateway accepted the payout, money has left
the platform without a matching debit. The payout is then stored with
requires_reconciliation=True and logged CRITICAL; the reconciliation
sweep applies the debit later. The external payout is never retried.

Usage:
    from payments.services import PayoutService

    payout = PayoutService.request_payout(
        host_id=host.id,
        amount=15000,
        method="razorpay",
        currency="INR",
    )
"""

from __future__ import annotations

import uuid

from django.conf import settings

from core.services import BaseService

from payments.adapters import (
    CreatePayoutParams,
    GatewayHttpAdapter,
    IdempotencyKeyGenerator,
    PayoutResult,
    get_adapter,
)
from payments.exceptions import InsufficientFundsError, PaymentValidationError
from payments.ledger import WalletLedger
from payments.locks import DistributedLock, wallet_lock_key
from payments.models import Payout, Wallet
from payments.state_machines import PaymentGateway, PayoutState

# =============================================================================
# Constants
# =============================================================================

# Distributed lock TTL for one payout request (seconds)
PAYOUT_LOCK_TTL = 120

# Lock acquisition timeout (seconds)
PAYOUT_LOCK_TIMEOUT = 10.0


class PayoutService(BaseService):
    """
    Service for host payout requests.

    Gateway adapters can be injected for testing with set_adapter().
    """

    _adapter: type | None = None

    @classmethod
    def get_adapter(cls, method: str) -> type[GatewayHttpAdapter]:
        """Get the adapter class for a payout method."""
        return cls._adapter or get_adapter(method)

    @classmethod
    def set_adapter(cls, adapter: type | None) -> None:
        """Set the adapter class used for every method (for testing)."""
        cls._adapter = adapter

    @classmethod
    def request_payout(
        cls,
        host_id: int,
        amount: int,
        method: str,
        currency: str | None = None,
        request_id: uuid.UUID | None = None,
    ) -> Payout:
        """
        Pay out part of a host's withdrawal balance.

        Args:
            host_id: Host requesting the payout
            amount: Minor units to pay out
            method: PaymentGateway value to pay out through
            currency: Defaults to the wallet currency
            request_id: Client-supplied id, reused across retries of the
                same request so the gateway deduplicates it

        Returns:
            The Payout in PROCESSING state

        Raises:
            PaymentValidationError: Bad amount, below minimum, unsupported
                method or currency, destination not linked
            PaymentNotFoundError: Host has no wallet
            InsufficientFundsError: withdrawal_balance < amount
            GatewayError: Gateway rejected or did not answer
            LockAcquisitionError: Another payout for this wallet is running
        """
        logger = cls.get_logger()

        # 1. amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise PaymentValidationError(
                "Payout amount must be a positive integer",
                error_code="INVALID_AMOUNT",
                details={"amount": repr(amount)},
            )

        # 2. wallet
        wallet = WalletLedger.get_wallet_for_host(host_id)

        with DistributedLock(
            wallet_lock_key(wallet.id), ttl=PAYOUT_LOCK_TTL, timeout=PAYOUT_LOCK_TIMEOUT
        ):
            wallet.refresh_from_db()
            currency = (currency or wallet.currency).upper()

            # 3. balance
            if wallet.withdrawal_balance < amount:
                logger.info(
                    "Payout rejected, insufficient balance",
                    extra={
                        "wallet_id": str(wallet.id),
                        "amount": amount,
                        "available": wallet.withdrawal_balance,
                    },
                )
                raise InsufficientFundsError(
                    wallet_id=wallet.id,
                    balance_field="withdrawal_balance",
                    required=amount,
                    available=wallet.withdrawal_balance,
                )

            # 4. minimum
            cls._validate_minimum(wallet, amount, currency)

            # 5. destination
            destination = cls._validate_destination(wallet, method)

            # 6. gateway
            if request_id is None:
                request_id = uuid.uuid4()
            idempotency_key = IdempotencyKeyGenerator.generate("payout", request_id)
            result = cls.get_adapter(method).create_payout(
                CreatePayoutParams(
                    amount=amount,
                    currency=currency,
                    destination=destination,
                    idempotency_key=idempotency_key,
                    note=settings.PAYOUT_NOTE,
                )
            )

            # 7. local bookkeeping
            payout = cls._record_payout(wallet, amount, currency, method, result, idempotency_key)

        logger.info(
            "Payout requested",
            extra={
                "payout_id": str(payout.id),
                "wallet_id": str(wallet.id),
                "method": method,
                "amount": amount,
                "currency": currency,
                "external_payout_id": result.id,
                "requires_reconciliation": payout.requires_reconciliation,
            },
        )
        return payout

    @classmethod
    def _validate_minimum(cls, wallet: Wallet, amount: int, currency: str) -> None:
        if currency != wallet.currency:
            raise PaymentValidationError(
                f"Wallet holds {wallet.currency}, cannot pay out in {currency}",
                error_code="CURRENCY_MISMATCH",
                details={"wallet_currency": wallet.currency, "currency": currency},
            )

        minimum = settings.MIN_WITHDRAWAL.get(currency)
        if minimum is None:
            raise PaymentValidationError(
                f"Payouts in {currency} are not supported",
                error_code="UNSUPPORTED_CURRENCY",
            )
        if amount < minimum:
            raise PaymentValidationError(
                f"Minimum withdrawal is {minimum} {currency}",
                error_code="BELOW_MINIMUM_WITHDRAWAL",
                details={"minimum": minimum, "currency": currency, "amount": amount},
            )

    @classmethod
    def _validate_destination(cls, wallet: Wallet, method: str) -> str:
        if method not in PaymentGateway.values:
            raise PaymentValidationError(
                f"Unsupported payout method '{method}'",
                error_code="INVALID_PAYOUT_METHOD",
            )

        destination = wallet.payout_destination(method)
        if not destination:
            message = (
                "PayPal email is not linked or not verified"
                if method == PaymentGateway.PAYPAL
                else "Razorpay account is not linked"
            )
            raise PaymentValidationError(
                message,
                error_code="PAYOUT_DESTINATION_MISSING",
                details={"method": method},
            )
        return destination

    @classmethod
    def _record_payout(
        cls,
        wallet: Wallet,
        amount: int,
        currency: str,
        method: str,
        result: PayoutResult,
        idempotency_key: str,
    ) -> Payout:
        """
        Persist the payout and debit the wallet in one transaction.

        Falls back to a reconciliation record if that transaction fails.
        """
        fields = {
            "wallet": wallet,
            "amount": amount,
            "currency": currency,
            "method": method,
            "external_payout_id": result.id,
            "status": PayoutState.PROCESSING,
            "metadata": {
                "idempotency_key": idempotency_key,
                "gateway_status": result.status,
            },
        }

        try:
            with cls.atomic():
                payout = Payout.objects.create(**fields)
                WalletLedger.apply_payout_debit(payout)
            return payout
        except Exception as e:
            cls.get_logger().critical(
                "Payout sent but local debit failed, flagged for reconciliation",
                extra={
                    "wallet_id": str(wallet.id),
                    "amount": amount,
                    "method": method,
                    "external_payout_id": result.id,
                    "error": type(e).__name__,
                },
                exc_info=True,
            )
            reason = getattr(e, "message", None) or type(e).__name__

        # The failed transaction rolled back the payout row too
        return Payout.objects.create(
            **fields,
            requires_reconciliation=True,
            failure_reason=reason,
        )


__all__ = ["PAYOUT_LOCK_TIMEOUT", "PAYOUT_LOCK_TTL", "PayoutService"]

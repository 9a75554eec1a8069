"""
Wallet ledger: the only writer of Wallet balances.

Every mutation is one conditional UPDATE built from F() expressions:

    UPDATE wallet
       SET withdrawal_balance = withdrawal_balance - :amount,
           total_withdrawn    = total_withdrawn + :amount
     WHERE id = :id AND withdrawal_balance >= :amount

Zero rows updated means either no wallet or not enough balance; the
ledger tells the two apart afterwards. Two sessions for the same host
can therefore settle concurrently without a lost update, and no balance
can go negative.

On internal paths (penalty adjustment, settlement release) a failed
conditional update means the ledger is inconsistent and is logged at
CRITICAL. On the payout path it is an ordinary rejection.

Usage:
    from payments.ledger import WalletLedger

    WalletLedger.credit_pending_earnings(host.id, 4950, currency="INR")
    WalletLedger.release_to_withdrawable(host.id, 4950)
    WalletLedger.debit_withdrawable(wallet.id, 15000)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import F

from payments.exceptions import (
    InsufficientFundsError,
    InvariantViolationError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.ledger.records import record_transaction
from payments.ledger.types import TransactionParams
from payments.models import Payout, Transaction, Wallet
from payments.state_machines import TransactionStatus, TransactionType

if TYPE_CHECKING:
    import uuid

logger = logging.getLogger(__name__)


class WalletLedger:
    """
    Atomic balance operations on host wallets.

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def _validate_amount(amount: int, allow_zero: bool = True) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise PaymentValidationError(
                "Amount must be an integer number of minor units",
                error_code="INVALID_AMOUNT",
                details={"amount": repr(amount)},
            )
        if amount < 0 or (amount == 0 and not allow_zero):
            raise PaymentValidationError(
                "Amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"amount": amount},
            )

    @staticmethod
    def get_wallet_for_host(host_id: int) -> Wallet:
        """
        Raises:
            PaymentNotFoundError: Host has no wallet yet
        """
        try:
            return Wallet.objects.get(host_id=host_id)
        except Wallet.DoesNotExist:
            raise PaymentNotFoundError(
                f"Wallet for host {host_id} not found",
                error_code="WALLET_NOT_FOUND",
                details={"host_id": host_id},
            )

    @staticmethod
    def _raise_for_failed_update(
        lookup: dict,
        balance_field: str,
        amount: int,
        critical: bool,
    ) -> None:
        """Explain why a conditional update matched no row."""
        wallet = Wallet.objects.filter(**lookup).first()
        if wallet is None:
            raise PaymentNotFoundError(
                "Wallet not found",
                error_code="WALLET_NOT_FOUND",
                details={k: str(v) for k, v in lookup.items()},
            )

        available = getattr(wallet, balance_field)
        log = logger.critical if critical else logger.warning
        log(
            "Wallet balance would go negative",
            extra={
                "wallet_id": str(wallet.id),
                "host_id": wallet.host_id,
                "balance_field": balance_field,
                "required": amount,
                "available": available,
            },
        )
        raise InsufficientFundsError(
            wallet_id=wallet.id,
            balance_field=balance_field,
            required=amount,
            available=available,
        )

    # =========================================================================
    # Currency
    # =========================================================================

    @staticmethod
    def check_currency(host_id: int, currency: str) -> None:
        """
        Reject work in a currency other than the host's wallet currency.

        A host without a wallet accepts any currency; the first capture
        fixes it.

        Raises:
            PaymentValidationError: Wallet exists in another currency
        """
        wallet_currency = (
            Wallet.objects.filter(host_id=host_id).values_list("currency", flat=True).first()
        )
        if wallet_currency is not None and wallet_currency != currency.upper():
            raise PaymentValidationError(
                f"Host wallet holds {wallet_currency}, not {currency.upper()}",
                error_code="CURRENCY_MISMATCH",
                details={"wallet_currency": wallet_currency, "currency": currency.upper()},
            )

    @staticmethod
    def _credit_in_currency(host_id: int, amount: int, currency: str) -> None:
        updated = Wallet.objects.filter(host_id=host_id, currency=currency).update(
            pending_earnings=F("pending_earnings") + amount
        )
        if updated:
            return

        wallet_currency = (
            Wallet.objects.filter(host_id=host_id).values_list("currency", flat=True).first()
        )
        if wallet_currency is None:
            raise PaymentNotFoundError(
                f"Wallet for host {host_id} not found",
                error_code="WALLET_NOT_FOUND",
                details={"host_id": host_id},
            )

        logger.critical(
            "Credit currency does not match wallet currency",
            extra={
                "host_id": host_id,
                "amount": amount,
                "currency": currency,
                "wallet_currency": wallet_currency,
            },
        )
        raise InvariantViolationError(
            "Credit currency does not match wallet currency",
            error_code="CURRENCY_MISMATCH",
            details={
                "host_id": host_id,
                "currency": currency,
                "wallet_currency": wallet_currency,
            },
        )

    # =========================================================================
    # Pending earnings
    # =========================================================================

    @staticmethod
    def credit_pending_earnings(host_id: int, amount: int, currency: str = "INR") -> Wallet:
        """
        Add to a host's pending earnings, creating the wallet if absent.

        Args:
            host_id: Host user id
            amount: Minor units to credit (zero creates the wallet only)
            currency: Currency of the amount; must match an existing wallet

        Returns:
            The wallet after the credit

        Raises:
            InvariantViolationError: Wallet exists in another currency
        """
        WalletLedger._validate_amount(amount)
        currency = currency.upper()

        updated = Wallet.objects.filter(host_id=host_id, currency=currency).update(
            pending_earnings=F("pending_earnings") + amount
        )
        if not updated:
            if Wallet.objects.filter(host_id=host_id).exists():
                WalletLedger._credit_in_currency(host_id, amount, currency)
            else:
                try:
                    with transaction.atomic():
                        Wallet.objects.create(
                            host_id=host_id,
                            currency=currency,
                            pending_earnings=amount,
                        )
                    logger.info(
                        "Wallet created",
                        extra={"host_id": host_id, "currency": currency},
                    )
                except IntegrityError:
                    # Created concurrently by another credit
                    WalletLedger._credit_in_currency(host_id, amount, currency)

        logger.info(
            "Pending earnings credited",
            extra={"host_id": host_id, "amount": amount, "currency": currency},
        )
        return Wallet.objects.get(host_id=host_id)

    @staticmethod
    def deduct_pending_earnings(host_id: int, amount: int) -> Wallet:
        """
        Remove a penalty from a host's pending earnings.

        Raises:
            PaymentNotFoundError: Host has no wallet
            InsufficientFundsError: Pending earnings smaller than amount
                (ledger inconsistency, logged critical)
        """
        WalletLedger._validate_amount(amount)
        if amount == 0:
            return WalletLedger.get_wallet_for_host(host_id)

        updated = Wallet.objects.filter(
            host_id=host_id,
            pending_earnings__gte=amount,
        ).update(pending_earnings=F("pending_earnings") - amount)

        if not updated:
            WalletLedger._raise_for_failed_update(
                {"host_id": host_id}, "pending_earnings", amount, critical=True
            )

        logger.info(
            "Pending earnings deducted",
            extra={"host_id": host_id, "amount": amount},
        )
        return Wallet.objects.get(host_id=host_id)

    @staticmethod
    def release_to_withdrawable(host_id: int, amount: int) -> Wallet:
        """
        Move funds from pending earnings to the withdrawal balance.

        Both balances and total_earned change in one UPDATE, so the move
        is all-or-nothing.

        Raises:
            PaymentNotFoundError: Host has no wallet
            InsufficientFundsError: Pending earnings smaller than amount
                (ledger inconsistency, logged critical)
        """
        WalletLedger._validate_amount(amount)
        if amount == 0:
            return WalletLedger.get_wallet_for_host(host_id)

        updated = Wallet.objects.filter(
            host_id=host_id,
            pending_earnings__gte=amount,
        ).update(
            pending_earnings=F("pending_earnings") - amount,
            withdrawal_balance=F("withdrawal_balance") + amount,
            total_earned=F("total_earned") + amount,
        )

        if not updated:
            WalletLedger._raise_for_failed_update(
                {"host_id": host_id}, "pending_earnings", amount, critical=True
            )

        logger.info(
            "Earnings released to withdrawable balance",
            extra={"host_id": host_id, "amount": amount},
        )
        return Wallet.objects.get(host_id=host_id)

    # =========================================================================
    # Withdrawable balance
    # =========================================================================

    @staticmethod
    def debit_withdrawable(wallet_id: uuid.UUID, amount: int) -> Wallet:
        """
        Take a payout amount out of the withdrawal balance.

        Raises:
            PaymentValidationError: amount <= 0
            PaymentNotFoundError: No such wallet
            InsufficientFundsError: withdrawal_balance < amount
        """
        WalletLedger._validate_amount(amount, allow_zero=False)

        updated = Wallet.objects.filter(
            id=wallet_id,
            withdrawal_balance__gte=amount,
        ).update(
            withdrawal_balance=F("withdrawal_balance") - amount,
            total_withdrawn=F("total_withdrawn") + amount,
        )

        if not updated:
            WalletLedger._raise_for_failed_update(
                {"id": wallet_id}, "withdrawal_balance", amount, critical=False
            )

        logger.info(
            "Withdrawal balance debited",
            extra={"wallet_id": str(wallet_id), "amount": amount},
        )
        return Wallet.objects.get(id=wallet_id)

    @staticmethod
    def apply_payout_debit(payout: Payout) -> Transaction | None:
        """
        Debit the wallet for a payout and write its PAYOUT transaction.

        Idempotent per payout: if the PAYOUT transaction already exists
        the debit was applied before and nothing happens.

        Returns:
            The new Transaction, or None if the debit was already applied

        Raises:
            InsufficientFundsError: withdrawal_balance < payout.amount
        """
        key = f"payout:{payout.id}"
        with transaction.atomic():
            # Serializes a payout request and a reconciliation sweep on one payout
            payout = Payout.objects.select_for_update().select_related("wallet").get(pk=payout.pk)
            if Transaction.objects.filter(idempotency_key=key).exists():
                return None

            WalletLedger.debit_withdrawable(payout.wallet_id, payout.amount)
            record, _ = record_transaction(
                TransactionParams(
                    user_id=payout.wallet.host_id,
                    type=TransactionType.PAYOUT,
                    amount=payout.amount,
                    currency=payout.currency,
                    idempotency_key=key,
                    gateway=payout.method,
                    external_reference=payout.external_payout_id or "",
                    status=TransactionStatus.COMPLETED,
                    description="Payout",
                    metadata={
                        "payout_id": str(payout.id),
                        "note": f"Payout via {payout.method}",
                    },
                )
            )
        return record

    @staticmethod
    def reverse_payout_debit(payout: Payout) -> Transaction | None:
        """
        Give a failed payout's amount back to the withdrawal balance.

        Only applies if the payout was debited and not reversed before.

        Returns:
            The PAYOUT_REVERSAL Transaction, or None if there was nothing to reverse
        """
        key = f"payout-reversal:{payout.id}"
        with transaction.atomic():
            payout = Payout.objects.select_for_update().select_related("wallet").get(pk=payout.pk)
            if not Transaction.objects.filter(idempotency_key=f"payout:{payout.id}").exists():
                return None
            if Transaction.objects.filter(idempotency_key=key).exists():
                return None

            updated = Wallet.objects.filter(
                id=payout.wallet_id,
                total_withdrawn__gte=payout.amount,
            ).update(
                withdrawal_balance=F("withdrawal_balance") + payout.amount,
                total_withdrawn=F("total_withdrawn") - payout.amount,
            )
            if not updated:
                WalletLedger._raise_for_failed_update(
                    {"id": payout.wallet_id}, "total_withdrawn", payout.amount, critical=True
                )

            record, _ = record_transaction(
                TransactionParams(
                    user_id=payout.wallet.host_id,
                    type=TransactionType.PAYOUT_REVERSAL,
                    amount=payout.amount,
                    currency=payout.currency,
                    idempotency_key=key,
                    gateway=payout.method,
                    external_reference=payout.external_payout_id or "",
                    description="Payout reversal",
                    metadata={
                        "payout_id": str(payout.id),
                        "reason": payout.failure_reason or "",
                    },
                )
            )

        logger.info(
            "Payout debit reversed",
            extra={"payout_id": str(payout.id), "amount": payout.amount},
        )
        return record


__all__ = ["WalletLedger"]

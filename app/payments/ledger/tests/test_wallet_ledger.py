"""
Tests for WalletLedger.

Every balance change is a conditional UPDATE, so the interesting cases
are the ones where the condition fails: the wallet must be left exactly
as it was.
"""

import random

import pytest

from payments.exceptions import (
    InsufficientFundsError,
    InvariantViolationError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.ledger import WalletLedger
from payments.models import Transaction, Wallet
from payments.state_machines import TransactionType
from payments.tests.factories import PayoutFactory, WalletFactory

pytestmark = pytest.mark.django_db


def _balances(wallet_id):
    wallet = Wallet.objects.get(pk=wallet_id)
    return (
        wallet.pending_earnings,
        wallet.withdrawal_balance,
        wallet.total_earned,
        wallet.total_withdrawn,
    )


class TestCreditPendingEarnings:
    def test_creates_wallet_on_first_credit(self, host):
        wallet = WalletLedger.credit_pending_earnings(host.id, 500, currency="USD")

        assert wallet.host_id == host.id
        assert wallet.pending_earnings == 500
        assert wallet.currency == "USD"

    def test_adds_to_existing_wallet(self, host):
        WalletFactory(host=host, pending_earnings=300)

        wallet = WalletLedger.credit_pending_earnings(host.id, 500)

        assert wallet.pending_earnings == 800
        assert Wallet.objects.filter(host=host).count() == 1

    def test_credit_in_other_currency_rejected(self, host, mocker):
        WalletFactory(host=host, currency="INR", pending_earnings=4950)
        mock_logger = mocker.patch("payments.ledger.wallet_ledger.logger")

        with pytest.raises(InvariantViolationError) as exc_info:
            WalletLedger.credit_pending_earnings(host.id, 99, currency="USD")

        assert exc_info.value.error_code == "CURRENCY_MISMATCH"
        assert Wallet.objects.get(host=host).pending_earnings == 4950
        mock_logger.critical.assert_called_once()

    def test_check_currency(self, host):
        WalletLedger.check_currency(host.id, "USD")
        WalletFactory(host=host, currency="INR")
        WalletLedger.check_currency(host.id, "inr")

        with pytest.raises(PaymentValidationError) as exc_info:
            WalletLedger.check_currency(host.id, "USD")

        assert exc_info.value.error_code == "CURRENCY_MISMATCH"

    def test_zero_credit_only_creates_wallet(self, host):
        wallet = WalletLedger.credit_pending_earnings(host.id, 0)

        assert wallet.pending_earnings == 0

    @pytest.mark.parametrize("amount", [-1, 1.5, "10", True])
    def test_rejects_bad_amounts(self, host, amount):
        with pytest.raises(PaymentValidationError):
            WalletLedger.credit_pending_earnings(host.id, amount)

        assert not Wallet.objects.filter(host=host).exists()


class TestDeductPendingEarnings:
    def test_deducts(self, host):
        WalletFactory(host=host, pending_earnings=500)

        wallet = WalletLedger.deduct_pending_earnings(host.id, 300)

        assert wallet.pending_earnings == 200

    def test_rejects_overdraw_without_change(self, host):
        wallet = WalletFactory(host=host, pending_earnings=200)

        with pytest.raises(InsufficientFundsError) as exc_info:
            WalletLedger.deduct_pending_earnings(host.id, 300)

        assert exc_info.value.available == 200
        assert exc_info.value.required == 300
        assert _balances(wallet.id) == (200, 0, 0, 0)

    def test_missing_wallet(self, host):
        with pytest.raises(PaymentNotFoundError) as exc_info:
            WalletLedger.deduct_pending_earnings(host.id, 1)

        assert exc_info.value.error_code == "WALLET_NOT_FOUND"

    def test_overdraw_logged_critical(self, host, mocker):
        logger = mocker.patch("payments.ledger.wallet_ledger.logger")
        WalletFactory(host=host, pending_earnings=0)

        with pytest.raises(InsufficientFundsError):
            WalletLedger.deduct_pending_earnings(host.id, 1)

        logger.critical.assert_called_once()


class TestReleaseToWithdrawable:
    def test_moves_pending_to_withdrawable(self, host):
        wallet = WalletFactory(host=host, pending_earnings=800)

        WalletLedger.release_to_withdrawable(host.id, 500)

        assert _balances(wallet.id) == (300, 500, 500, 0)

    def test_insufficient_pending_changes_nothing(self, host):
        wallet = WalletFactory(host=host, pending_earnings=100)

        with pytest.raises(InsufficientFundsError):
            WalletLedger.release_to_withdrawable(host.id, 500)

        assert _balances(wallet.id) == (100, 0, 0, 0)

    def test_zero_release_is_noop(self, host):
        wallet = WalletFactory(host=host, pending_earnings=100)

        WalletLedger.release_to_withdrawable(host.id, 0)

        assert _balances(wallet.id) == (100, 0, 0, 0)


class TestDebitWithdrawable:
    def test_debits(self):
        wallet = WalletFactory(withdrawal_balance=1000)

        WalletLedger.debit_withdrawable(wallet.id, 400)

        assert _balances(wallet.id) == (0, 600, 0, 400)

    def test_exact_balance(self):
        wallet = WalletFactory(withdrawal_balance=1000)

        WalletLedger.debit_withdrawable(wallet.id, 1000)

        assert _balances(wallet.id)[1] == 0

    def test_zero_rejected(self):
        wallet = WalletFactory(withdrawal_balance=1000)

        with pytest.raises(PaymentValidationError):
            WalletLedger.debit_withdrawable(wallet.id, 0)

    def test_overdraw_is_plain_rejection(self, mocker):
        logger = mocker.patch("payments.ledger.wallet_ledger.logger")
        wallet = WalletFactory(withdrawal_balance=100)

        with pytest.raises(InsufficientFundsError):
            WalletLedger.debit_withdrawable(wallet.id, 101)

        logger.critical.assert_not_called()
        logger.warning.assert_called_once()
        assert _balances(wallet.id) == (0, 100, 0, 0)


class TestPayoutDebit:
    def test_apply_writes_transaction(self):
        wallet = WalletFactory(withdrawal_balance=20000)
        payout = PayoutFactory(wallet=wallet, amount=15000)

        record = WalletLedger.apply_payout_debit(payout)

        assert record.type == TransactionType.PAYOUT
        assert record.user_id == wallet.host_id
        assert record.idempotency_key == f"payout:{payout.id}"
        assert record.external_reference == payout.external_payout_id
        assert _balances(wallet.id) == (0, 5000, 0, 15000)

    def test_apply_twice_debits_once(self):
        wallet = WalletFactory(withdrawal_balance=20000)
        payout = PayoutFactory(wallet=wallet, amount=15000)

        WalletLedger.apply_payout_debit(payout)
        assert WalletLedger.apply_payout_debit(payout) is None

        assert _balances(wallet.id)[1] == 5000
        assert Transaction.objects.filter(type=TransactionType.PAYOUT).count() == 1

    def test_reverse_restores_balance(self):
        wallet = WalletFactory(withdrawal_balance=20000)
        payout = PayoutFactory(wallet=wallet, amount=15000)
        WalletLedger.apply_payout_debit(payout)

        record = WalletLedger.reverse_payout_debit(payout)

        assert record.type == TransactionType.PAYOUT_REVERSAL
        assert _balances(wallet.id) == (0, 20000, 0, 0)

    def test_reverse_twice_credits_once(self):
        wallet = WalletFactory(withdrawal_balance=20000)
        payout = PayoutFactory(wallet=wallet, amount=15000)
        WalletLedger.apply_payout_debit(payout)

        WalletLedger.reverse_payout_debit(payout)
        assert WalletLedger.reverse_payout_debit(payout) is None

        assert _balances(wallet.id)[1] == 20000

    def test_reverse_without_debit_is_noop(self):
        wallet = WalletFactory(withdrawal_balance=20000)
        payout = PayoutFactory(wallet=wallet, amount=15000)

        assert WalletLedger.reverse_payout_debit(payout) is None
        assert _balances(wallet.id)[1] == 20000


class TestNeverNegative:
    """Random operation sequences never drive any balance below zero."""

    OPERATIONS = ("credit", "deduct", "release", "debit")

    @pytest.mark.parametrize("seed", range(8))
    def test_random_sequence(self, host, seed):
        rng = random.Random(seed)
        WalletLedger.credit_pending_earnings(host.id, 0)
        wallet_id = Wallet.objects.get(host=host).id
        expected = {"pending": 0, "withdrawable": 0}

        for _ in range(60):
            operation = rng.choice(self.OPERATIONS)
            amount = rng.randint(1, 1500)
            try:
                if operation == "credit":
                    WalletLedger.credit_pending_earnings(host.id, amount)
                    expected["pending"] += amount
                elif operation == "deduct":
                    WalletLedger.deduct_pending_earnings(host.id, amount)
                    expected["pending"] -= amount
                elif operation == "release":
                    WalletLedger.release_to_withdrawable(host.id, amount)
                    expected["pending"] -= amount
                    expected["withdrawable"] += amount
                else:
                    WalletLedger.debit_withdrawable(wallet_id, amount)
                    expected["withdrawable"] -= amount
            except InsufficientFundsError:
                pass

            pending, withdrawable, _, _ = _balances(wallet_id)
            assert pending >= 0
            assert withdrawable >= 0
            assert (pending, withdrawable) == (expected["pending"], expected["withdrawable"])

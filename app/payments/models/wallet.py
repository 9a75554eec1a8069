"""
Wallet model: per-host balances in minor currency units.

Balances are never written with a read-modify-write. Every change goes
through payments.ledger.wallet_ledger.WalletLedger as a single
conditional UPDATE with F() expressions.

Usage:
    from payments.ledger import WalletLedger

    WalletLedger.credit_pending_earnings(host.id, 4950)
    wallet = Wallet.objects.get(host=host)
    wallet.pending_earnings  # 4950
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentGateway


class Wallet(UUIDPrimaryKeyMixin, BaseModel):
    """
    Earnings wallet for a host. Created lazily on first credit.

    Fields:
        pending_earnings: Host share of captured sessions still in escrow
        withdrawal_balance: Released funds available for payout
        total_earned: Lifetime released earnings
        total_withdrawn: Lifetime paid-out amount
        razorpay_account_id: Linked Razorpay Route account (acc_xxx)
        paypal_email: PayPal payout receiver
        paypal_verified: Whether paypal_email has been verified
    """

    host = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="wallet",
    )

    currency = models.CharField(max_length=3, default="INR")

    pending_earnings = models.PositiveBigIntegerField(default=0)
    withdrawal_balance = models.PositiveBigIntegerField(default=0)
    total_earned = models.PositiveBigIntegerField(default=0)
    total_withdrawn = models.PositiveBigIntegerField(default=0)

    # Payout destinations
    razorpay_account_id = models.CharField(max_length=64, blank=True, default="")
    paypal_email = models.EmailField(blank=True, default="")
    paypal_verified = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"
        constraints = [
            models.CheckConstraint(
                condition=Q(pending_earnings__gte=0),
                name="wallet_pending_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(withdrawal_balance__gte=0),
                name="wallet_withdrawable_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(total_earned__gte=0),
                name="wallet_total_earned_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(total_withdrawn__gte=0),
                name="wallet_total_withdrawn_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Wallet({self.host_id}, pending={self.pending_earnings}, available={self.withdrawal_balance})"

    def payout_destination(self, method: str) -> str | None:
        """
        Linked destination for a payout method, or None if unusable.

        PayPal destinations count only once verified.
        """
        if method == PaymentGateway.RAZORPAY:
            return self.razorpay_account_id or None
        if method == PaymentGateway.PAYPAL:
            if self.paypal_email and self.paypal_verified:
                return self.paypal_email
            return None
        return None

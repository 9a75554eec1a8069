"""
Payout model for host withdrawals.

A Payout is created only after the gateway accepted the payout, so it
starts in PROCESSING with the gateway's external id. In the normal path
the wallet debit and the PAYOUT transaction are written in the same
database transaction.

If the external payout succeeded but the local debit could not be
written, the Payout is still recorded with requires_reconciliation=True
and picked up by the reconciliation sweep, which retries the local
debit only.

Usage:
    from payments.models import Payout

    payout = Payout.objects.create(
        wallet=wallet,
        amount=15000,
        currency="INR",
        method=PaymentGateway.RAZORPAY,
        external_payout_id="trf_9Ab...",
    )

    payout.complete()
    payout.save()
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentGateway, PayoutState


class Payout(UUIDPrimaryKeyMixin, BaseModel):
    """
    A withdrawal from a host wallet to a linked gateway destination.

    State Flow:
        PROCESSING -> COMPLETED
        PROCESSING -> FAILED

    Fields:
        wallet: Wallet the amount was (or must be) debited from
        amount: Payout amount in minor currency units
        method: Gateway used for the payout
        external_payout_id: Gateway payout/transfer/batch id
        requires_reconciliation: Local debit still missing for this payout
        reconciled_at: When the reconciliation sweep wrote the debit
        failure_reason: Why the local debit failed, or why the payout failed
    """

    wallet = models.ForeignKey(
        "payments.Wallet",
        on_delete=models.PROTECT,
        related_name="payouts",
    )

    amount = models.PositiveBigIntegerField(help_text="Minor currency units")
    currency = models.CharField(max_length=3)

    method = models.CharField(
        max_length=16,
        choices=PaymentGateway.choices,
    )

    external_payout_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
    )

    status = FSMField(
        default=PayoutState.PROCESSING,
        choices=PayoutState.choices,
        db_index=True,
        protected=True,
    )

    # ==========================================================================
    # Reconciliation
    # ==========================================================================

    requires_reconciliation = models.BooleanField(default=False, db_index=True)
    reconciled_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(null=True, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["wallet", "status"], name="payout_wallet_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount} {self.currency})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.COMPLETED)
    def complete(self):
        """Gateway confirmed the money arrived."""
        self.completed_at = timezone.now()

    @transition(field=status, source=PayoutState.PROCESSING, target=PayoutState.FAILED)
    def fail(self, reason: str | None = None):
        """Gateway reported the payout failed."""
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason

    def mark_reconciled(self):
        self.requires_reconciliation = False
        self.reconciled_at = timezone.now()

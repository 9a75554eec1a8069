"""
Transaction model: write-once audit record of a monetary movement.

Every balance change on a Session or Wallet is paired with exactly one
Transaction, written in the same database transaction. Each row carries
a unique idempotency_key so a retried operation cannot write it twice:

    capture:<session_id>    CREDIT_PURCHASE for the seeker
    penalty:<session_id>    PENALTY_DEDUCTION for the host
    earning:<session_id>    SESSION_EARNING for the host
    fee:<session_id>        PLATFORM_FEE for the seeker
    payout:<payout_id>      PAYOUT for the host

Rows are never updated or deleted.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.exceptions import InvariantViolationError
from payments.state_machines import (
    PaymentGateway,
    TransactionStatus,
    TransactionType,
)


class TransactionQuerySet(models.QuerySet):
    """Queryset that refuses bulk mutation of the audit trail."""

    def update(self, **kwargs):
        raise InvariantViolationError(
            "Transactions are write-once",
            error_code="TRANSACTION_IMMUTABLE",
        )

    def delete(self):
        raise InvariantViolationError(
            "Transactions cannot be deleted",
            error_code="TRANSACTION_IMMUTABLE",
        )


class Transaction(UUIDPrimaryKeyMixin, BaseModel):
    """Immutable record of one purchase, earning, fee, penalty or payout."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    session = models.ForeignKey(
        "payments.Session",
        on_delete=models.PROTECT,
        related_name="transactions",
        null=True,
        blank=True,
    )

    type = models.CharField(
        max_length=32,
        choices=TransactionType.choices,
        db_index=True,
    )

    amount = models.PositiveBigIntegerField(help_text="Minor currency units")
    currency = models.CharField(max_length=3)

    gateway = models.CharField(
        max_length=16,
        choices=PaymentGateway.choices,
        blank=True,
        default="",
    )

    external_reference = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=TransactionStatus.choices,
        default=TransactionStatus.COMPLETED,
    )

    description = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Operation key; a second write with the same key is rejected",
    )

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["user", "created_at"], name="transaction_user_idx"),
            models.Index(fields=["session", "type"], name="transaction_session_type_idx"),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.type}, {self.amount} {self.currency}, user={self.user_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvariantViolationError(
                "Transactions are write-once",
                error_code="TRANSACTION_IMMUTABLE",
                details={"transaction_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvariantViolationError(
            "Transactions cannot be deleted",
            error_code="TRANSACTION_IMMUTABLE",
            details={"transaction_id": str(self.pk)},
        )

"""
Session model: the financial record of one paid seeker/host interaction.

A Session carries three independent state machines, all monotonic:

    status:             pending_payment → payment_received → completed
    payment_status:     pending → captured → held_in_escrow → released
    settlement_status:  pending → completed

Shares are stored in minor currency units. They start as the base split
computed at order time and are finalized when the seeker submits a
satisfaction score.

Usage:
    from payments.models import Session

    session = Session.objects.create(
        seeker=seeker,
        host=host,
        session_type=SessionType.VOICE_CALL,
        amount_paid=9900,
        currency="INR",
        gateway=PaymentGateway.RAZORPAY,
        gateway_order_id="order_Nx3...",
        platform_share=4950,
        host_share=4950,
    )

Note:
    State fields are protected. Move them only through the transition
    methods, which the session ledger calls under a row lock.
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import (
    PaymentGateway,
    SessionPaymentStatus,
    SessionStatus,
    SessionType,
    SettlementStatus,
)


class Session(UUIDPrimaryKeyMixin, BaseModel):
    """
    One paid interaction between a seeker and a host.

    Invariants (enforced by database constraints):
        - platform_share + host_share <= amount_paid
        - platform_share + host_share == amount_paid once settled
        - penalty_applied >= 0
        - satisfaction_score within [0, 100] when present

    Sessions are never deleted.
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    seeker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sessions_as_seeker",
        help_text="User who paid for the session",
    )

    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sessions_as_host",
        help_text="User providing the session and earning the host share",
    )

    session_type = models.CharField(
        max_length=32,
        choices=SessionType.choices,
        help_text="Offering tier booked by the seeker",
    )

    # ==========================================================================
    # Payment
    # ==========================================================================

    amount_paid = models.PositiveBigIntegerField(
        help_text="Amount paid in minor currency units (paise, cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text="ISO 4217 currency code (uppercase)",
    )

    gateway = models.CharField(
        max_length=16,
        choices=PaymentGateway.choices,
        help_text="Gateway that collected the payment",
    )

    gateway_order_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Order reference issued by the gateway at order creation",
    )

    gateway_capture_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Capture/payment reference, set once the capture webhook arrives",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=SessionStatus.PENDING_PAYMENT,
        choices=SessionStatus.choices,
        db_index=True,
        protected=True,
    )

    payment_status = FSMField(
        default=SessionPaymentStatus.PENDING,
        choices=SessionPaymentStatus.choices,
        protected=True,
    )

    settlement_status = FSMField(
        default=SettlementStatus.PENDING,
        choices=SettlementStatus.choices,
        db_index=True,
        protected=True,
    )

    # ==========================================================================
    # Split
    # ==========================================================================

    platform_share = models.PositiveBigIntegerField(default=0)
    host_share = models.PositiveBigIntegerField(default=0)
    penalty_applied = models.PositiveBigIntegerField(
        default=0,
        help_text="Base host share minus final host share",
    )

    satisfaction_score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(100)],
        help_text="Seeker rating 0-100, submitted when the session ends",
    )

    # ==========================================================================
    # Timestamps & Concurrency
    # ==========================================================================

    ended_at = models.DateTimeField(null=True, blank=True, db_index=True)
    settled_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Session"
        verbose_name_plural = "Sessions"
        indexes = [
            models.Index(
                fields=["status", "settlement_status", "ended_at"],
                name="session_settlement_scan_idx",
            ),
            models.Index(fields=["host", "status"], name="session_host_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(platform_share__lte=F("amount_paid") - F("host_share")),
                name="session_shares_within_amount",
            ),
            models.CheckConstraint(
                condition=(
                    Q(settlement_status=SettlementStatus.PENDING)
                    | Q(platform_share=F("amount_paid") - F("host_share"))
                ),
                name="session_settled_shares_exact",
            ),
            models.CheckConstraint(
                condition=Q(penalty_applied__gte=0),
                name="session_penalty_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(satisfaction_score__isnull=True)
                | Q(satisfaction_score__gte=0, satisfaction_score__lte=100),
                name="session_score_in_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Session({self.id}, {self.status}, {self.amount_paid} {self.currency})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # Lifecycle Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=SessionStatus.PENDING_PAYMENT,
        target=SessionStatus.PAYMENT_RECEIVED,
    )
    def mark_payment_received(self, capture_id: str):
        """
        Record the verified capture.

        Transition: PENDING_PAYMENT -> PAYMENT_RECEIVED
        """
        self.gateway_capture_id = capture_id

    @transition(
        field=status,
        source=SessionStatus.PAYMENT_RECEIVED,
        target=SessionStatus.COMPLETED,
    )
    def complete(self, satisfaction_score: int, platform_share: int, host_share: int, penalty: int):
        """
        Finalize the split after the seeker's rating.

        Transition: PAYMENT_RECEIVED -> COMPLETED
        """
        self.satisfaction_score = satisfaction_score
        self.platform_share = platform_share
        self.host_share = host_share
        self.penalty_applied = penalty
        self.ended_at = timezone.now()

    # ==========================================================================
    # Payment Transitions
    # ==========================================================================

    @transition(
        field=payment_status,
        source=SessionPaymentStatus.PENDING,
        target=SessionPaymentStatus.CAPTURED,
    )
    def capture(self):
        """Transition: PENDING -> CAPTURED"""

    @transition(
        field=payment_status,
        source=SessionPaymentStatus.CAPTURED,
        target=SessionPaymentStatus.HELD_IN_ESCROW,
    )
    def hold_in_escrow(self):
        """Transition: CAPTURED -> HELD_IN_ESCROW"""

    @transition(
        field=payment_status,
        source=[SessionPaymentStatus.CAPTURED, SessionPaymentStatus.HELD_IN_ESCROW],
        target=SessionPaymentStatus.RELEASED,
    )
    def release(self):
        """
        Funds left escrow for the host's withdrawable balance.

        Transition: CAPTURED/HELD_IN_ESCROW -> RELEASED
        """

    # ==========================================================================
    # Settlement Transitions
    # ==========================================================================

    @transition(
        field=settlement_status,
        source=SettlementStatus.PENDING,
        target=SettlementStatus.COMPLETED,
        conditions=[lambda session: session.status == SessionStatus.COMPLETED],
    )
    def settle(self):
        """
        Mark the host share as released.

        Transition: PENDING -> COMPLETED (only once the session is COMPLETED)
        """
        self.settled_at = timezone.now()

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_captured(self) -> bool:
        """Capture has been recorded (payment_received or later)."""
        return self.status != SessionStatus.PENDING_PAYMENT

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def is_settled(self) -> bool:
        return self.settlement_status == SettlementStatus.COMPLETED

    def hold_elapsed(self, hold_hours: int, now=None) -> bool:
        """Whether the escrow hold after ended_at has run out."""
        if self.ended_at is None:
            return False
        now = now or timezone.now()
        return self.ended_at + timedelta(hours=hold_hours) <= now

"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Session lifecycle (Session.status):
    pending_payment → payment_received → completed

Session payment substate (Session.payment_status):
    pending → captured → held_in_escrow → released

Session settlement substate (Session.settlement_status):
    pending → completed

Payout States:
    processing → completed
    processing → failed

All session transitions are monotonic: there is no backward edge.
"""

from django.db import models


class SessionStatus(models.TextChoices):
    """
    Lifecycle of a paid session.

    State Flow:
        PENDING_PAYMENT → PAYMENT_RECEIVED → COMPLETED

    COMPLETED can only be reached from PAYMENT_RECEIVED; a session whose
    payment was never captured cannot be completed or settled.
    """

    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    PAYMENT_RECEIVED = "payment_received", "Payment Received"
    COMPLETED = "completed", "Completed"


class SessionPaymentStatus(models.TextChoices):
    """
    Where the seeker's money is.

    State Flow:
        PENDING → CAPTURED → HELD_IN_ESCROW → RELEASED
    """

    PENDING = "pending", "Pending"
    CAPTURED = "captured", "Captured"
    HELD_IN_ESCROW = "held_in_escrow", "Held in Escrow"
    RELEASED = "released", "Released"


class SettlementStatus(models.TextChoices):
    """
    Whether the host share has moved to the withdrawable balance.

    State Flow:
        PENDING → COMPLETED
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"


class PayoutState(models.TextChoices):
    """
    States for the Payout model lifecycle.

    Terminal states: COMPLETED, FAILED

    State Flow:
        PROCESSING → COMPLETED
        PROCESSING → FAILED

    A payout is created in PROCESSING only after the gateway has accepted
    it, so there is no pending state.
    """

    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (gateway redelivery retries it)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class PaymentGateway(models.TextChoices):
    """
    Supported payment gateways.

    The set is closed: adding a gateway means adding a member here plus
    its verifier, adapter and webhook handler.
    """

    RAZORPAY = "razorpay", "Razorpay"
    PAYPAL = "paypal", "PayPal"


class SessionType(models.TextChoices):
    """Offering tiers a seeker can book."""

    LOVE_CHAT = "love_chat", "Love Chat"
    VOICE_CALL = "voice_call", "Voice Call"
    VIDEO_CALL = "video_call", "Video Call"
    PREMIUM_EXPERIENCE = "premium_experience", "Premium Experience"


class TransactionType(models.TextChoices):
    """Kinds of monetary movement recorded in the audit trail."""

    CREDIT_PURCHASE = "credit_purchase", "Credit Purchase"
    SESSION_EARNING = "session_earning", "Session Earning"
    PLATFORM_FEE = "platform_fee", "Platform Fee"
    PENALTY_DEDUCTION = "penalty_deduction", "Penalty Deduction"
    PAYOUT = "payout", "Payout"
    PAYOUT_REVERSAL = "payout_reversal", "Payout Reversal"


class TransactionStatus(models.TextChoices):
    """Outcome recorded on a Transaction."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


__all__ = [
    "PaymentGateway",
    "PayoutState",
    "SessionPaymentStatus",
    "SessionStatus",
    "SessionType",
    "SettlementStatus",
    "TransactionStatus",
    "TransactionType",
    "WebhookEventStatus",
]

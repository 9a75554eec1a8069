"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    PaymentGateway,
    PayoutState,
    SessionPaymentStatus,
    SessionStatus,
    SessionType,
    SettlementStatus,
    TransactionStatus,
    TransactionType,
    WebhookEventStatus,
)

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

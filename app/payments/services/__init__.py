"""
Payment services for coordinating escrow operations.

This module provides:
- OrderService: Creates gateway orders and their sessions
- SettlementService: Releases held earnings after the hold period
- PayoutService: Pays out a host's withdrawal balance
- ReconciliationService: Applies debits for payouts that missed them

Usage:
    from payments.services import PayoutService, SettlementService

    results = SettlementService.run_batch()
    payout = PayoutService.request_payout(host.id, 15000, "razorpay")
"""

from payments.services.order_service import OrderCreationResult, OrderService
from payments.services.payout_service import PayoutService
from payments.services.reconciliation_service import (
    ReconciliationRunResult,
    ReconciliationService,
)
from payments.services.settlement_service import SettlementService

__all__ = [
    "OrderCreationResult",
    "OrderService",
    "PayoutService",
    "ReconciliationRunResult",
    "ReconciliationService",
    "SettlementService",
]

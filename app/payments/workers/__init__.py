"""
Workers for periodic escrow processing.

This module contains Celery tasks for background operations:
- SettlementWorker: Releases held earnings once the hold period elapses
- ReconciliationWorker: Applies debits for payouts flagged for reconciliation

Usage:
    from payments.workers import (
        run_settlement_batch,
        settle_single_session,
        reconcile_pending_payouts,
        reconcile_single_payout,
    )

    run_settlement_batch.delay()
    settle_single_session.delay(str(session_id))
"""

from payments.workers.reconciliation_worker import (
    reconcile_pending_payouts,
    reconcile_single_payout,
)
from payments.workers.settlement_worker import (
    run_settlement_batch,
    settle_single_session,
)

__all__ = [
    # Settlement Worker
    "run_settlement_batch",
    "settle_single_session",
    # Reconciliation Worker
    "reconcile_pending_payouts",
    "reconcile_single_payout",
]

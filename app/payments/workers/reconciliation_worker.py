"""
Reconciliation worker for payouts sent without a local debit.

Tasks:
- reconcile_pending_payouts: Periodic sweep over flagged payouts
- reconcile_single_payout: On-demand reconciliation of one payout

Usage:
    from payments.workers import reconcile_pending_payouts

    reconcile_pending_payouts.delay()
    reconcile_single_payout.delay(str(payout.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task

from payments.services import ReconciliationService
from payments.services.reconciliation_service import RECONCILIATION_BATCH_SIZE

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def reconcile_pending_payouts(self, limit: int = RECONCILIATION_BATCH_SIZE) -> dict:
    """
    Apply missing debits for payouts flagged requires_reconciliation.

    Returns:
        Dict with examined, reconciled and still_pending
    """
    result = ReconciliationService.reconcile_pending_payouts(limit=limit)
    if result.still_pending:
        logger.warning(
            "Payouts still awaiting reconciliation",
            extra={"count": len(result.still_pending)},
        )
    return result.to_dict()


@shared_task(bind=True, acks_late=True)
def reconcile_single_payout(self, payout_id: str) -> dict:
    reconciled = ReconciliationService.reconcile_payout(UUID(payout_id))
    return {"payout_id": payout_id, "reconciled": reconciled}

"""
Settlement worker for releasing escrowed host earnings.

Tasks:
- run_settlement_batch: Periodic task that settles every eligible session
- settle_single_session: Settles one session (manual trigger, retries)

Usage:
    # Typically called via celery-beat (registered by a data migration)
    from payments.workers import run_settlement_batch

    # Or manually trigger processing
    run_settlement_batch.delay()

    # Settle a specific session
    settle_single_session.delay(str(session.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock
from payments.services import SettlementService

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# One batch at a time across all workers
BATCH_LOCK_KEY = "settlement:batch"

# Lock TTL for a batch run (seconds)
BATCH_LOCK_TTL = 300


# =============================================================================
# Periodic Task: Settlement Batch
# =============================================================================


@shared_task(bind=True)
def run_settlement_batch(self, hold_hours: int | None = None) -> dict:
    """
    Settle completed sessions whose hold period has elapsed.

    Overlapping ticks are skipped rather than queued. Skipping is safe
    because a session left unsettled is picked up by the next tick.

    Returns:
        Dict with:
        - skipped: True if another batch held the lock
        - settled / failed: Counts for this run
        - results: Per-session outcome
    """
    try:
        with DistributedLock(BATCH_LOCK_KEY, ttl=BATCH_LOCK_TTL, blocking=False):
            results = SettlementService.run_batch(hold_hours=hold_hours)
    except LockAcquisitionError:
        logger.info("Settlement batch already running, skipping tick")
        return {"skipped": True, "settled": 0, "failed": 0, "results": []}

    summary = {
        "skipped": False,
        "settled": sum(1 for r in results if r.status == "settled"),
        "failed": sum(1 for r in results if not r.ok),
        "results": [r.to_dict() for r in results],
    }
    logger.info(
        "Settlement batch task complete",
        extra={"settled": summary["settled"], "failed": summary["failed"]},
    )
    return summary


# =============================================================================
# Individual Settlement Task
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(LockAcquisitionError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def settle_single_session(self, session_id: str) -> dict:
    """
    Settle one session.

    Args:
        session_id: UUID string of the Session

    Returns:
        SettlementResult as a dict
    """
    result = SettlementService.settle_one(UUID(session_id))
    logger.info(
        "Single session settlement complete",
        extra={"session_id": session_id, "status": result.status},
    )
    return result.to_dict()

"""
Celery tasks for payment processing.

This module provides:
- Periodic cleanup of old webhook audit rows
- Re-exports of the worker tasks so Celery autodiscover registers them

Usage:
    from payments.tasks import run_settlement_batch

    run_settlement_batch.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)

WEBHOOK_RETENTION_DAYS = 90


@shared_task
def cleanup_old_webhook_events(days: int = WEBHOOK_RETENTION_DAYS) -> dict:
    """
    Delete processed webhook events older than `days`.

    Failed events are kept for debugging.

    Returns:
        Dict with count of events deleted
    """
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={"deleted_count": deleted_count, "cutoff_date": cutoff.isoformat()},
        )

    return {"deleted_count": deleted_count}


# =============================================================================
# Re-exported Worker Tasks
# =============================================================================
# Defined in payments.workers, imported here so Celery autodiscover finds them.

from payments.workers import (  # noqa: E402
    reconcile_pending_payouts,
    reconcile_single_payout,
    run_settlement_batch,
    settle_single_session,
)

__all__ = [
    "cleanup_old_webhook_events",
    "reconcile_pending_payouts",
    "reconcile_single_payout",
    "run_settlement_batch",
    "settle_single_session",
]

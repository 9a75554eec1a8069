"""
Settlement of completed sessions after the escrow hold period.

run_batch() is called by the periodic Celery task; settle_one() by the
task for a single session and the staff API. Each session is settled
in its own database transaction with the session row locked, so a
second scheduler tick (or a concurrent worker) sees the flipped
settlement status and skips the session.

Usage:
    from payments.services import SettlementService

    results = SettlementService.run_batch()
    failed = [r for r in results if not r.ok]
"""

from __future__ import annotations

import uuid
from datetime import datetime

from django.conf import settings
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService

from payments.exceptions import PaymentNotFoundError
from payments.ledger import SessionLedger, SettlementResult, WalletLedger
from payments.state_machines import SettlementStatus

SETTLED = "settled"
ALREADY_SETTLED = "already_settled"
HOLD_NOT_ELAPSED = "hold_not_elapsed"
NOT_FOUND = "not_found"
FAILED = "failed"


class SettlementService(BaseService):
    """Releases held host earnings to the withdrawal balance."""

    @classmethod
    def run_batch(
        cls,
        hold_hours: int | None = None,
        batch_size: int | None = None,
        now: datetime | None = None,
    ) -> list[SettlementResult]:
        """
        Settle every eligible session, one at a time.

        A failure on one session is recorded in its result and the batch
        continues.
        """
        if hold_hours is None:
            hold_hours = settings.ESCROW_HOLD_HOURS
        now = now or timezone.now()

        sessions = SessionLedger.find_settlement_eligible(
            hold_hours=hold_hours, batch_size=batch_size, now=now
        )
        cls.get_logger().info(
            "Settlement batch started",
            extra={"eligible": len(sessions), "hold_hours": hold_hours},
        )

        results = []
        for session in sessions:
            try:
                result = cls.settle_one(session.id, hold_hours=hold_hours, now=now)
            except Exception as e:
                cls.get_logger().error(
                    f"Unexpected settlement error: {type(e).__name__}",
                    extra={"session_id": str(session.id)},
                    exc_info=True,
                )
                result = SettlementResult(session_id=session.id, status=FAILED, error="Internal error")
            results.append(result)

        cls.get_logger().info(
            "Settlement batch finished",
            extra={
                "eligible": len(sessions),
                "settled": sum(1 for r in results if r.status == SETTLED),
                "failed": sum(1 for r in results if r.status == FAILED),
            },
        )
        return results

    @classmethod
    def settle_one(
        cls,
        session_id: uuid.UUID,
        hold_hours: int | None = None,
        now: datetime | None = None,
    ) -> SettlementResult:
        """
        Release one session's host share and mark it settled.

        Returns a SettlementResult instead of raising for expected
        outcomes (already settled, hold running, missing session, ledger
        error).
        """
        if hold_hours is None:
            hold_hours = settings.ESCROW_HOLD_HOURS
        now = now or timezone.now()
        logger = cls.get_logger()

        try:
            with cls.atomic():
                session = SessionLedger.lock_session(session_id)

                if session.settlement_status != SettlementStatus.PENDING:
                    logger.info(
                        "Session already settled",
                        extra={"session_id": str(session_id)},
                    )
                    return SettlementResult(session_id=session_id, status=ALREADY_SETTLED)

                if not session.is_completed or not session.hold_elapsed(hold_hours, now=now):
                    return SettlementResult(
                        session_id=session_id,
                        status=HOLD_NOT_ELAPSED,
                        error="Hold period not yet elapsed",
                    )

                WalletLedger.release_to_withdrawable(session.host_id, session.host_share)
                SessionLedger.mark_settled(session)
        except PaymentNotFoundError as e:
            logger.warning(
                "Settlement skipped, record missing",
                extra={"session_id": str(session_id), "error_code": e.error_code},
            )
            status = NOT_FOUND if e.error_code == "SESSION_NOT_FOUND" else FAILED
            return SettlementResult(session_id=session_id, status=status, error=e.message)
        except BaseApplicationError as e:
            logger.error(
                "Settlement failed",
                extra={"session_id": str(session_id), "error_code": e.error_code},
            )
            return SettlementResult(session_id=session_id, status=FAILED, error=e.message)

        logger.info(
            "Session settled",
            extra={
                "session_id": str(session_id),
                "host_id": session.host_id,
                "amount": session.host_share,
            },
        )
        return SettlementResult(session_id=session_id, status=SETTLED, amount=session.host_share)

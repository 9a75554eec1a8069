"""
Reconciliation of payouts whose local debit failed.

A payout flagged requires_reconciliation already exists at the gateway.
The sweep only retries the local side (wallet debit + PAYOUT transaction),
which is idempotent per payout, and never calls the gateway again.

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService.reconcile_pending_payouts()
    print(f"Reconciled {result.reconciled} of {result.examined}")
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from core.exceptions import BaseApplicationError
from core.services import BaseService

from payments.exceptions import InsufficientFundsError, LockAcquisitionError, PaymentNotFoundError
from payments.ledger import WalletLedger
from payments.locks import DistributedLock, wallet_lock_key
from payments.models import Payout

# Upper bound on payouts examined per sweep
RECONCILIATION_BATCH_SIZE = 100

RECONCILIATION_LOCK_TTL = 60


@dataclass
class ReconciliationRunResult:
    """
    Attributes:
        examined: Flagged payouts looked at
        reconciled: Payouts whose debit is now applied
        still_pending: Payout ids left flagged (insufficient balance, lock busy, error)
    """

    examined: int = 0
    reconciled: int = 0
    still_pending: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "examined": self.examined,
            "reconciled": self.reconciled,
            "still_pending": self.still_pending,
        }


class ReconciliationService(BaseService):
    """Heals payouts that were sent without a matching wallet debit."""

    @classmethod
    def reconcile_pending_payouts(
        cls, limit: int = RECONCILIATION_BATCH_SIZE
    ) -> ReconciliationRunResult:
        result = ReconciliationRunResult()
        payout_ids = list(
            Payout.objects.filter(requires_reconciliation=True)
            .order_by("created_at")
            .values_list("id", flat=True)[:limit]
        )

        for payout_id in payout_ids:
            result.examined += 1
            if cls.reconcile_payout(payout_id):
                result.reconciled += 1
            else:
                result.still_pending.append(str(payout_id))

        cls.get_logger().info("Payout reconciliation finished", extra=result.to_dict())
        return result

    @classmethod
    def reconcile_payout(cls, payout_id: uuid.UUID) -> bool:
        """
        Apply the missing debit for one flagged payout.

        Returns:
            True if the payout no longer needs reconciliation
        """
        logger = cls.get_logger()
        try:
            payout = Payout.objects.get(id=payout_id)
        except Payout.DoesNotExist:
            raise PaymentNotFoundError(
                f"Payout {payout_id} not found",
                error_code="PAYOUT_NOT_FOUND",
                details={"payout_id": str(payout_id)},
            )

        if not payout.requires_reconciliation:
            return True

        try:
            with DistributedLock(
                wallet_lock_key(payout.wallet_id), ttl=RECONCILIATION_LOCK_TTL, blocking=False
            ):
                with cls.atomic():
                    WalletLedger.apply_payout_debit(payout)
                    payout = Payout.objects.select_for_update().get(id=payout_id)
                    payout.mark_reconciled()
                    payout.save()
        except LockAcquisitionError:
            logger.info(
                "Wallet busy, reconciliation deferred",
                extra={"payout_id": str(payout_id)},
            )
            return False
        except InsufficientFundsError:
            logger.critical(
                "Payout still cannot be debited, manual review needed",
                extra={
                    "payout_id": str(payout_id),
                    "wallet_id": str(payout.wallet_id),
                    "amount": payout.amount,
                    "external_payout_id": payout.external_payout_id,
                },
            )
            return False
        except BaseApplicationError as e:
            logger.error(
                "Payout reconciliation failed",
                extra={"payout_id": str(payout_id), "error_code": e.error_code},
            )
            return False

        logger.info(
            "Payout reconciled",
            extra={"payout_id": str(payout_id), "amount": payout.amount},
        )
        return True

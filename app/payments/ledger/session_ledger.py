"""
Session ledger: the only writer of Session state and session Transactions.

Each operation that changes a session locks its row (select_for_update)
inside one database transaction and re-checks the current state under
that lock, so capture, hold, completion and settlement are serialized
per session while unrelated sessions proceed independently.

Replays are answered from session state:
    - record_capture on a session already past PENDING_PAYMENT is a no-op
    - hold_in_escrow on a session already held (or released) is a no-op
    - complete_session on a COMPLETED session raises AlreadyCompletedError

Usage:
    from payments.ledger import SessionLedger

    session = SessionLedger.create_session(
        seeker_id=seeker.id,
        host_id=host.id,
        session_type=SessionType.VOICE_CALL,
        amount=9900,
        currency="INR",
        gateway=PaymentGateway.RAZORPAY,
        gateway_order_id="order_Nx3...",
    )
    SessionLedger.record_capture("order_Nx3...", "pay_Q8z...")
    SessionLedger.hold_in_escrow(session.id)
    result = SessionLedger.complete_session(session.id, satisfaction_score=72)
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from payments.exceptions import (
    AlreadyCompletedError,
    InvalidStateTransitionError,
    InvariantViolationError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.ledger.records import record_transaction
from payments.ledger.types import CaptureResult, CompletionResult, TransactionParams
from payments.ledger.wallet_ledger import WalletLedger
from payments.locks import lock_for_update
from payments.models import Session
from payments.penalty import PenaltyPolicy, base_split, compute_split
from payments.state_machines import (
    PaymentGateway,
    SessionPaymentStatus,
    SessionStatus,
    SessionType,
    SettlementStatus,
    TransactionType,
)

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

logger = logging.getLogger(__name__)

CAPTURE_DESCRIPTION = "Global Social Credits"


class SessionLedger:
    """
    Financial lifecycle of a Session.

    All methods are static - no instance state is maintained.
    """

    # =========================================================================
    # Creation
    # =========================================================================

    @staticmethod
    def create_session(
        seeker_id: int,
        host_id: int,
        session_type: str,
        amount: int,
        currency: str,
        gateway: str,
        gateway_order_id: str,
        policy: PenaltyPolicy | None = None,
    ) -> Session:
        """
        Insert a session awaiting payment with the base split.

        Raises:
            PaymentValidationError: Missing field, unknown enum value,
                amount <= 0 or a currency other than the host wallet's
        """
        required = {
            "seeker_id": seeker_id,
            "host_id": host_id,
            "session_type": session_type,
            "currency": currency,
            "gateway": gateway,
            "gateway_order_id": gateway_order_id,
        }
        missing = [name for name, value in required.items() if value in (None, "")]
        if missing:
            raise PaymentValidationError(
                f"Missing required fields: {', '.join(missing)}",
                error_code="MISSING_FIELDS",
                details={"fields": missing},
            )
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise PaymentValidationError(
                "Amount must be a positive integer",
                error_code="INVALID_AMOUNT",
                details={"amount": repr(amount)},
            )
        if session_type not in SessionType.values:
            raise PaymentValidationError(
                f"Unknown session type '{session_type}'",
                error_code="INVALID_SESSION_TYPE",
            )
        if gateway not in PaymentGateway.values:
            raise PaymentValidationError(
                f"Unsupported gateway '{gateway}'",
                error_code="INVALID_GATEWAY",
            )
        if seeker_id == host_id:
            raise PaymentValidationError(
                "Seeker and host must be different users",
                error_code="SAME_PARTY",
            )
        WalletLedger.check_currency(host_id, currency)

        platform_share, host_share = base_split(amount, policy)

        session = Session.objects.create(
            seeker_id=seeker_id,
            host_id=host_id,
            session_type=session_type,
            amount_paid=amount,
            currency=currency.upper(),
            gateway=gateway,
            gateway_order_id=gateway_order_id,
            platform_share=platform_share,
            host_share=host_share,
        )

        logger.info(
            "Session created",
            extra={
                "session_id": str(session.id),
                "gateway": gateway,
                "amount": amount,
                "currency": session.currency,
            },
        )
        return session

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def get_session(session_id: uuid.UUID) -> Session:
        try:
            return Session.objects.get(id=session_id)
        except (Session.DoesNotExist, ValueError, TypeError):
            raise PaymentNotFoundError(
                f"Session {session_id} not found",
                error_code="SESSION_NOT_FOUND",
                details={"session_id": str(session_id)},
            )

    @staticmethod
    def _lock_by_order(gateway_order_id: str) -> Session:
        session = (
            Session.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )
        if session is None:
            raise PaymentNotFoundError(
                "Session not found for gateway order",
                error_code="SESSION_NOT_FOUND",
                details={"gateway_order_id": gateway_order_id},
            )
        return session

    @staticmethod
    def lock_session(session_id: uuid.UUID) -> Session:
        """Lock a session row; call inside transaction.atomic()."""
        return lock_for_update(Session, session_id)

    # =========================================================================
    # Capture & escrow
    # =========================================================================

    @staticmethod
    def record_capture(gateway_order_id: str, gateway_capture_id: str) -> CaptureResult:
        """
        Record a verified capture for the session behind a gateway order.

        In one database transaction: capture reference and statuses set,
        host share credited to pending earnings, CREDIT_PURCHASE written
        for the seeker. Sessions already past PENDING_PAYMENT are left
        untouched.

        Raises:
            PaymentNotFoundError: No session for the order
            PaymentValidationError: Missing capture reference
        """
        if not gateway_capture_id:
            raise PaymentValidationError(
                "Capture reference is required",
                error_code="MISSING_CAPTURE_ID",
            )

        with transaction.atomic():
            session = SessionLedger._lock_by_order(gateway_order_id)

            if session.status != SessionStatus.PENDING_PAYMENT:
                logger.info(
                    "Capture already recorded, ignoring replay",
                    extra={
                        "session_id": str(session.id),
                        "status": session.status,
                        "gateway_capture_id": gateway_capture_id,
                    },
                )
                return CaptureResult(session=session, captured=False)

            session.mark_payment_received(gateway_capture_id)
            session.capture()
            session.save()

            WalletLedger.credit_pending_earnings(
                session.host_id, session.host_share, currency=session.currency
            )

            record_transaction(
                TransactionParams(
                    user_id=session.seeker_id,
                    session_id=session.id,
                    type=TransactionType.CREDIT_PURCHASE,
                    amount=session.amount_paid,
                    currency=session.currency,
                    gateway=session.gateway,
                    external_reference=gateway_capture_id,
                    description=CAPTURE_DESCRIPTION,
                    idempotency_key=f"capture:{session.id}",
                    metadata={"gateway_order_id": gateway_order_id},
                )
            )

        logger.info(
            "Capture recorded",
            extra={
                "session_id": str(session.id),
                "gateway": session.gateway,
                "amount": session.amount_paid,
                "host_share": session.host_share,
            },
        )
        return CaptureResult(session=session, captured=True)

    @staticmethod
    def hold_in_escrow(session_id: uuid.UUID) -> bool:
        """
        Mark captured funds as held in escrow.

        Returns:
            True if the status changed, False if already held or released

        Raises:
            PaymentNotFoundError: No such session
            InvalidStateTransitionError: Payment not captured yet
        """
        with transaction.atomic():
            session = SessionLedger.lock_session(session_id)

            if session.payment_status in (
                SessionPaymentStatus.HELD_IN_ESCROW,
                SessionPaymentStatus.RELEASED,
            ):
                return False

            try:
                session.hold_in_escrow()
            except TransitionNotAllowed:
                raise InvalidStateTransitionError(
                    f"Cannot hold session in escrow from payment status '{session.payment_status}'",
                    details={
                        "session_id": str(session.id),
                        "current_state": session.payment_status,
                        "transition": "hold_in_escrow",
                    },
                )
            session.save()

        logger.info("Session held in escrow", extra={"session_id": str(session_id)})
        return True

    # =========================================================================
    # Completion
    # =========================================================================

    @staticmethod
    def complete_session(
        session_id: uuid.UUID,
        satisfaction_score: int,
        policy: PenaltyPolicy | None = None,
    ) -> CompletionResult:
        """
        Finalize the split from the seeker's satisfaction score.

        In one database transaction: session shares, penalty, status and
        ended_at updated; pending earnings reduced by any penalty with a
        PENALTY_DEDUCTION; SESSION_EARNING (host) and PLATFORM_FEE
        (seeker) written.

        Raises:
            PaymentNotFoundError: No such session
            AlreadyCompletedError: Session already COMPLETED
            InvalidStateTransitionError: Payment not received yet
            PaymentValidationError: Score outside [0, 100]
            InvariantViolationError: Final host share exceeds the share
                credited at capture
        """
        with transaction.atomic():
            session = SessionLedger.lock_session(session_id)

            if session.status == SessionStatus.COMPLETED:
                raise AlreadyCompletedError(
                    "Session already completed",
                    details={"session_id": str(session.id)},
                )
            if session.status != SessionStatus.PAYMENT_RECEIVED:
                raise InvalidStateTransitionError(
                    f"Cannot complete session from '{session.status}'",
                    details={
                        "session_id": str(session.id),
                        "current_state": session.status,
                        "transition": "complete",
                    },
                )

            split = compute_split(session.amount_paid, satisfaction_score, policy)
            if split.total != session.amount_paid:
                logger.critical(
                    "Split does not add up to amount paid",
                    extra={"session_id": str(session.id), "split": repr(split)},
                )
                raise InvariantViolationError(
                    "Split does not add up to amount paid",
                    details={"session_id": str(session.id)},
                )

            credited_host_share = session.host_share
            adjustment = credited_host_share - split.host_share
            if adjustment < 0:
                logger.critical(
                    "Final host share exceeds share credited at capture",
                    extra={
                        "session_id": str(session.id),
                        "credited_host_share": credited_host_share,
                        "host_share": split.host_share,
                    },
                )
                raise InvariantViolationError(
                    "Final host share exceeds share credited at capture",
                    details={"session_id": str(session.id)},
                )

            session.complete(
                satisfaction_score=satisfaction_score,
                platform_share=split.platform_share,
                host_share=split.host_share,
                penalty=split.penalty_applied,
            )
            session.save()

            if adjustment > 0:
                WalletLedger.deduct_pending_earnings(session.host_id, adjustment)
                record_transaction(
                    TransactionParams(
                        user_id=session.host_id,
                        session_id=session.id,
                        type=TransactionType.PENALTY_DEDUCTION,
                        amount=adjustment,
                        currency=session.currency,
                        gateway=session.gateway,
                        description="Quality penalty",
                        idempotency_key=f"penalty:{session.id}",
                        metadata={"satisfaction_score": satisfaction_score},
                    )
                )

            record_transaction(
                TransactionParams(
                    user_id=session.host_id,
                    session_id=session.id,
                    type=TransactionType.SESSION_EARNING,
                    amount=split.host_share,
                    currency=session.currency,
                    gateway=session.gateway,
                    description="Session earning",
                    idempotency_key=f"earning:{session.id}",
                    metadata={
                        "satisfaction_score": satisfaction_score,
                        "penalty_applied": split.penalty_applied,
                    },
                )
            )
            record_transaction(
                TransactionParams(
                    user_id=session.seeker_id,
                    session_id=session.id,
                    type=TransactionType.PLATFORM_FEE,
                    amount=split.platform_share,
                    currency=session.currency,
                    gateway=session.gateway,
                    description="Platform fee",
                    idempotency_key=f"fee:{session.id}",
                )
            )

        logger.info(
            "Session completed",
            extra={
                "session_id": str(session.id),
                "satisfaction_score": satisfaction_score,
                "host_share": split.host_share,
                "platform_share": split.platform_share,
                "penalty_applied": split.penalty_applied,
            },
        )
        return CompletionResult(session=session, split=split)

    # =========================================================================
    # Settlement
    # =========================================================================

    @staticmethod
    def find_settlement_eligible(
        hold_hours: int | None = None,
        batch_size: int | None = None,
        now: datetime | None = None,
    ) -> list[Session]:
        """
        Completed, unsettled sessions whose hold period has elapsed.

        Oldest first, at most batch_size (default ESCROW_SETTLEMENT_BATCH_SIZE).
        """
        if hold_hours is None:
            hold_hours = settings.ESCROW_HOLD_HOURS
        if batch_size is None:
            batch_size = settings.ESCROW_SETTLEMENT_BATCH_SIZE
        cutoff = (now or timezone.now()) - timedelta(hours=hold_hours)

        return list(
            Session.objects.filter(
                status=SessionStatus.COMPLETED,
                settlement_status=SettlementStatus.PENDING,
                ended_at__lte=cutoff,
            ).order_by("ended_at")[:batch_size]
        )

    @staticmethod
    def mark_settled(session: Session) -> Session:
        """
        Flip a locked, completed session to settled.

        Caller holds the row lock and has already moved the funds.

        Raises:
            InvalidStateTransitionError: Session not COMPLETED or already settled
        """
        try:
            if session.payment_status != SessionPaymentStatus.RELEASED:
                session.release()
            session.settle()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                "Only completed, unsettled sessions can be settled",
                details={
                    "session_id": str(session.id),
                    "status": session.status,
                    "settlement_status": session.settlement_status,
                },
            )
        session.save()
        return session


__all__ = ["SessionLedger"]

"""
Tests for SessionLedger.

Covers the session lifecycle end to end: creation with the base split,
idempotent capture, escrow hold, completion with penalties, and the
settlement eligibility scan.
"""

import uuid
from datetime import timedelta

import pytest
from django.db import transaction
from django.utils import timezone
from freezegun import freeze_time

from payments.exceptions import (
    AlreadyCompletedError,
    InvalidStateTransitionError,
    InvariantViolationError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.ledger import SessionLedger
from payments.models import Session, Transaction, Wallet
from payments.penalty import PenaltyPolicy
from payments.state_machines import (
    PaymentGateway,
    SessionPaymentStatus,
    SessionStatus,
    SessionType,
    SettlementStatus,
    TransactionType,
)
from payments.tests.factories import SessionFactory, WalletFactory

pytestmark = pytest.mark.django_db


def _pending(host):
    return Wallet.objects.get(host=host).pending_earnings


class TestCreateSession:
    def test_creates_with_base_split(self, seeker, host):
        session = SessionLedger.create_session(
            seeker_id=seeker.id,
            host_id=host.id,
            session_type=SessionType.VIDEO_CALL,
            amount=9900,
            currency="inr",
            gateway=PaymentGateway.RAZORPAY,
            gateway_order_id="order_abc",
        )

        assert session.status == SessionStatus.PENDING_PAYMENT
        assert session.currency == "INR"
        assert (session.platform_share, session.host_share) == (4950, 4950)

    def test_missing_fields(self, seeker, host):
        with pytest.raises(PaymentValidationError) as exc_info:
            SessionLedger.create_session(
                seeker_id=seeker.id,
                host_id=host.id,
                session_type=SessionType.VOICE_CALL,
                amount=1000,
                currency="INR",
                gateway="",
                gateway_order_id="",
            )

        assert exc_info.value.error_code == "MISSING_FIELDS"
        assert exc_info.value.details["fields"] == ["gateway", "gateway_order_id"]

    @pytest.mark.parametrize(
        "overrides,error_code",
        [
            ({"amount": 0}, "INVALID_AMOUNT"),
            ({"amount": -100}, "INVALID_AMOUNT"),
            ({"session_type": "pottery_class"}, "INVALID_SESSION_TYPE"),
            ({"gateway": "stripe"}, "INVALID_GATEWAY"),
        ],
    )
    def test_invalid_values(self, seeker, host, overrides, error_code):
        kwargs = {
            "seeker_id": seeker.id,
            "host_id": host.id,
            "session_type": SessionType.VOICE_CALL,
            "amount": 1000,
            "currency": "INR",
            "gateway": PaymentGateway.RAZORPAY,
            "gateway_order_id": "order_abc",
            **overrides,
        }

        with pytest.raises(PaymentValidationError) as exc_info:
            SessionLedger.create_session(**kwargs)

        assert exc_info.value.error_code == error_code
        assert not Session.objects.exists()

    def test_seeker_cannot_host_themselves(self, host):
        with pytest.raises(PaymentValidationError) as exc_info:
            SessionLedger.create_session(
                seeker_id=host.id,
                host_id=host.id,
                session_type=SessionType.VOICE_CALL,
                amount=1000,
                currency="INR",
                gateway=PaymentGateway.RAZORPAY,
                gateway_order_id="order_abc",
            )

        assert exc_info.value.error_code == "SAME_PARTY"

    def test_currency_must_match_host_wallet(self, seeker, host):
        WalletFactory(host=host, currency="INR")

        with pytest.raises(PaymentValidationError) as exc_info:
            SessionLedger.create_session(
                seeker_id=seeker.id,
                host_id=host.id,
                session_type=SessionType.VOICE_CALL,
                amount=199,
                currency="usd",
                gateway=PaymentGateway.PAYPAL,
                gateway_order_id="order_usd",
            )

        assert exc_info.value.error_code == "CURRENCY_MISMATCH"
        assert not Session.objects.exists()


class TestRecordCapture:
    def test_capture(self, pending_session, host):
        result = SessionLedger.record_capture(pending_session.gateway_order_id, "pay_123")

        assert result.captured is True
        session = Session.objects.get(pk=pending_session.pk)
        assert session.status == SessionStatus.PAYMENT_RECEIVED
        assert session.payment_status == SessionPaymentStatus.CAPTURED
        assert session.gateway_capture_id == "pay_123"
        assert _pending(host) == 500

        purchase = Transaction.objects.get(type=TransactionType.CREDIT_PURCHASE)
        assert purchase.user_id == pending_session.seeker_id
        assert purchase.amount == 1000
        assert purchase.external_reference == "pay_123"
        assert purchase.idempotency_key == f"capture:{pending_session.id}"
        assert purchase.description == "Global Social Credits"

    def test_capture_is_idempotent(self, pending_session, host):
        SessionLedger.record_capture(pending_session.gateway_order_id, "pay_123")

        replay = SessionLedger.record_capture(pending_session.gateway_order_id, "pay_123")

        assert replay.captured is False
        assert _pending(host) == 500
        assert Transaction.objects.filter(type=TransactionType.CREDIT_PURCHASE).count() == 1

    def test_replay_after_completion_changes_nothing(self, completed_session, host):
        before = Session.objects.get(pk=completed_session.pk)

        replay = SessionLedger.record_capture(completed_session.gateway_order_id, "pay_other")

        after = Session.objects.get(pk=completed_session.pk)
        assert replay.captured is False
        assert after.status == SessionStatus.COMPLETED
        assert after.gateway_capture_id == before.gateway_capture_id
        assert after.version == before.version

    def test_unknown_order(self, db):
        with pytest.raises(PaymentNotFoundError) as exc_info:
            SessionLedger.record_capture("order_missing", "pay_123")

        assert exc_info.value.error_code == "SESSION_NOT_FOUND"

    def test_missing_capture_id(self, pending_session):
        with pytest.raises(PaymentValidationError) as exc_info:
            SessionLedger.record_capture(pending_session.gateway_order_id, "")

        assert exc_info.value.error_code == "MISSING_CAPTURE_ID"

    def test_failed_credit_rolls_back_capture(self, pending_session, mocker):
        mocker.patch(
            "payments.ledger.session_ledger.WalletLedger.credit_pending_earnings",
            side_effect=RuntimeError("db went away"),
        )

        with pytest.raises(RuntimeError):
            SessionLedger.record_capture(pending_session.gateway_order_id, "pay_123")

        session = Session.objects.get(pk=pending_session.pk)
        assert session.status == SessionStatus.PENDING_PAYMENT
        assert not Transaction.objects.exists()

    def test_capture_in_other_currency_never_mixes_balances(self, seeker, host):
        inr = SessionFactory(seeker=seeker, host=host, amount_paid=9900)
        usd = SessionFactory(
            seeker=seeker,
            host=host,
            amount_paid=199,
            currency="USD",
            gateway=PaymentGateway.PAYPAL,
        )
        SessionLedger.record_capture(inr.gateway_order_id, "pay_inr")

        with pytest.raises(InvariantViolationError) as exc_info:
            SessionLedger.record_capture(usd.gateway_order_id, "CAP-USD")

        assert exc_info.value.error_code == "CURRENCY_MISMATCH"
        wallet = Wallet.objects.get(host=host)
        assert (wallet.currency, wallet.pending_earnings) == ("INR", 4950)
        assert Session.objects.get(pk=usd.pk).status == SessionStatus.PENDING_PAYMENT
        assert not Transaction.objects.filter(session=usd).exists()


class TestHoldInEscrow:
    def test_hold_after_capture(self, pending_session):
        SessionLedger.record_capture(pending_session.gateway_order_id, "pay_123")

        assert SessionLedger.hold_in_escrow(pending_session.id) is True
        assert SessionLedger.hold_in_escrow(pending_session.id) is False

        session = Session.objects.get(pk=pending_session.pk)
        assert session.payment_status == SessionPaymentStatus.HELD_IN_ESCROW

    def test_hold_before_capture(self, pending_session):
        with pytest.raises(InvalidStateTransitionError):
            SessionLedger.hold_in_escrow(pending_session.id)


class TestCompleteSession:
    def test_no_penalty(self, held_session, host):
        result = SessionLedger.complete_session(held_session.id, 95)

        assert result.session.status == SessionStatus.COMPLETED
        assert result.session.satisfaction_score == 95
        assert result.split.penalty_applied == 0
        assert _pending(host) == 500

        earning = Transaction.objects.get(type=TransactionType.SESSION_EARNING)
        fee = Transaction.objects.get(type=TransactionType.PLATFORM_FEE)
        assert (earning.user_id, earning.amount) == (host.id, 500)
        assert (fee.user_id, fee.amount) == (held_session.seeker_id, 500)
        assert not Transaction.objects.filter(type=TransactionType.PENALTY_DEDUCTION).exists()

    def test_penalty_moves_host_share_to_platform(self, held_session, host):
        result = SessionLedger.complete_session(held_session.id, 60)

        session = Session.objects.get(pk=held_session.pk)
        assert (session.platform_share, session.host_share) == (1000, 0)
        assert session.penalty_applied == 500
        assert result.split.host_share == 0
        assert _pending(host) == 0

        penalty = Transaction.objects.get(type=TransactionType.PENALTY_DEDUCTION)
        assert penalty.amount == 500
        assert penalty.idempotency_key == f"penalty:{held_session.id}"

    def test_partial_penalty(self, held_session, host):
        SessionLedger.complete_session(held_session.id, 80)

        session = Session.objects.get(pk=held_session.pk)
        assert (session.platform_share, session.host_share) == (800, 200)
        assert _pending(host) == 200

    def test_second_completion_rejected(self, completed_session):
        with pytest.raises(AlreadyCompletedError) as exc_info:
            SessionLedger.complete_session(completed_session.id, 50)

        assert exc_info.value.http_status == 409
        session = Session.objects.get(pk=completed_session.pk)
        assert session.satisfaction_score == 95

    def test_already_completed_checked_before_score(self, completed_session):
        with pytest.raises(AlreadyCompletedError):
            SessionLedger.complete_session(completed_session.id, 150)

    def test_unpaid_session_rejected(self, pending_session):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            SessionLedger.complete_session(pending_session.id, 95)

        assert not isinstance(exc_info.value, AlreadyCompletedError)

    def test_invalid_score_leaves_session_untouched(self, held_session, host):
        with pytest.raises(PaymentValidationError):
            SessionLedger.complete_session(held_session.id, 101)

        session = Session.objects.get(pk=held_session.pk)
        assert session.status == SessionStatus.PAYMENT_RECEIVED
        assert _pending(host) == 500

    def test_missing_session(self, db):
        import uuid

        with pytest.raises(PaymentNotFoundError):
            SessionLedger.complete_session(uuid.uuid4(), 95)

    def test_host_share_above_credited_share_rejected(self, held_session, host):
        generous = PenaltyPolicy(platform_share_percent=30, host_share_percent=70)

        with pytest.raises(InvariantViolationError):
            SessionLedger.complete_session(held_session.id, 95, policy=generous)

        session = Session.objects.get(pk=held_session.pk)
        assert session.status == SessionStatus.PAYMENT_RECEIVED
        assert session.host_share == 500
        assert _pending(host) == 500
        assert not Transaction.objects.filter(type=TransactionType.SESSION_EARNING).exists()


class TestSettlementEligibility:
    def test_hold_must_elapse(self, completed_session):
        assert SessionLedger.find_settlement_eligible(hold_hours=24) == []

        with freeze_time(timezone.now() + timedelta(hours=24, minutes=1)):
            eligible = SessionLedger.find_settlement_eligible(hold_hours=24)

        assert [s.id for s in eligible] == [completed_session.id]

    def test_zero_hold(self, completed_session):
        eligible = SessionLedger.find_settlement_eligible(hold_hours=0)

        assert [s.id for s in eligible] == [completed_session.id]

    def test_uncompleted_sessions_ignored(self, held_session):
        later = timezone.now() + timedelta(days=30)

        assert SessionLedger.find_settlement_eligible(hold_hours=0, now=later) == []

    def test_batch_size(self, completed_session):
        assert SessionLedger.find_settlement_eligible(hold_hours=0, batch_size=0) == []

    def test_mark_settled(self, completed_session):
        with transaction.atomic():
            session = SessionLedger.lock_session(completed_session.id)
            SessionLedger.mark_settled(session)

        session = Session.objects.get(pk=completed_session.pk)
        assert session.settlement_status == SettlementStatus.COMPLETED
        assert session.payment_status == SessionPaymentStatus.RELEASED
        assert session.settled_at is not None

    def test_mark_settled_twice_rejected(self, completed_session):
        with transaction.atomic():
            SessionLedger.mark_settled(SessionLedger.lock_session(completed_session.id))

        with pytest.raises(InvalidStateTransitionError), transaction.atomic():
            SessionLedger.mark_settled(SessionLedger.lock_session(completed_session.id))

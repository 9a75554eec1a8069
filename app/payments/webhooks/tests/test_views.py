"""
Tests for the webhook endpoints.

Status contract: 200 for processed events, replays and unhandled event
types; 401 for a bad signature; 400 for a malformed payload; 404 when
the referenced session is unknown; 500 for anything else.
"""

import json

import pytest
from django.urls import reverse

from payments.ledger import SessionLedger
from payments.models import Session, Transaction, Wallet, WebhookEvent
from payments.state_machines import (
    SessionPaymentStatus,
    SessionStatus,
    TransactionType,
    WebhookEventStatus,
)

from .helpers import paypal_capture_body, razorpay_capture_body

pytestmark = pytest.mark.django_db

RAZORPAY_URL = reverse("payments:razorpay_webhook")
PAYPAL_URL = reverse("payments:paypal_webhook")


@pytest.fixture
def post_razorpay(client, sign_razorpay):
    def post(body: bytes, event_id: str | None = None, signature: str | None = None):
        headers = {"X-Razorpay-Signature": sign_razorpay(body) if signature is None else signature}
        if event_id:
            headers["X-Razorpay-Event-Id"] = event_id
        return client.post(RAZORPAY_URL, data=body, content_type="application/json", headers=headers)

    return post


@pytest.fixture
def post_paypal(client, sign_paypal):
    def post(body: bytes, headers: dict | None = None):
        return client.post(
            PAYPAL_URL,
            data=body,
            content_type="application/json",
            headers=sign_paypal(body) if headers is None else headers,
        )

    return post


class TestRazorpayWebhook:
    def test_capture(self, post_razorpay, pending_session, host):
        response = post_razorpay(
            razorpay_capture_body(pending_session.gateway_order_id, "pay_777"), event_id="evt_1"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Event processed"
        assert data["session_id"] == str(pending_session.id)
        assert data["captured"] is True

        session = Session.objects.get(pk=pending_session.pk)
        assert session.status == SessionStatus.PAYMENT_RECEIVED
        assert session.payment_status == SessionPaymentStatus.HELD_IN_ESCROW
        assert session.gateway_capture_id == "pay_777"
        assert Wallet.objects.get(host=host).pending_earnings == 500

        event = WebhookEvent.objects.get(event_id="evt_1")
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.event_type == "payment.captured"

    def test_bad_signature(self, post_razorpay, pending_session):
        response = post_razorpay(
            razorpay_capture_body(pending_session.gateway_order_id), signature="0" * 64
        )

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert not WebhookEvent.objects.exists()
        assert Session.objects.get(pk=pending_session.pk).status == SessionStatus.PENDING_PAYMENT

    def test_missing_signature(self, client, webhook_settings, pending_session):
        response = client.post(
            RAZORPAY_URL,
            data=razorpay_capture_body(pending_session.gateway_order_id),
            content_type="application/json",
        )

        assert response.status_code == 401
        assert not WebhookEvent.objects.exists()

    def test_unknown_order(self, post_razorpay, db):
        response = post_razorpay(razorpay_capture_body("order_nobody"), event_id="evt_404")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"
        event = WebhookEvent.objects.get(event_id="evt_404")
        assert event.status == WebhookEventStatus.FAILED

    def test_internal_error(self, post_razorpay, pending_session, mocker):
        mocker.patch(
            "payments.webhooks.handlers.SessionLedger.record_capture",
            side_effect=RuntimeError("database is locked"),
        )

        response = post_razorpay(razorpay_capture_body(pending_session.gateway_order_id))

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "INTERNAL_ERROR"
        assert "database" not in data["error"]

    def test_failed_event_can_be_redelivered(self, post_razorpay, pending_session, mocker):
        body = razorpay_capture_body(pending_session.gateway_order_id)
        original = SessionLedger.record_capture
        record_capture = mocker.patch(
            "payments.webhooks.handlers.SessionLedger.record_capture",
            side_effect=RuntimeError("database is locked"),
        )
        assert post_razorpay(body, event_id="evt_retry").status_code == 500

        record_capture.side_effect = original
        response = post_razorpay(body, event_id="evt_retry")

        assert response.status_code == 200
        event = WebhookEvent.objects.get(event_id="evt_retry")
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 2

    @pytest.mark.parametrize(
        "body",
        [b"not json", b"[1, 2, 3]", json.dumps({"payload": {}}).encode()],
    )
    def test_malformed_payload(self, post_razorpay, db, body):
        response = post_razorpay(body)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PAYLOAD"

    def test_duplicate_event(self, post_razorpay, pending_session, host):
        body = razorpay_capture_body(pending_session.gateway_order_id)
        post_razorpay(body, event_id="evt_dup")

        response = post_razorpay(body, event_id="evt_dup")

        assert response.status_code == 200
        assert response.json()["message"] == "Event already processed"
        assert Transaction.objects.filter(type=TransactionType.CREDIT_PURCHASE).count() == 1
        assert Wallet.objects.get(host=host).pending_earnings == 500

    def test_event_id_defaults_to_body_digest(self, post_razorpay, pending_session):
        body = razorpay_capture_body(pending_session.gateway_order_id)
        post_razorpay(body)
        post_razorpay(body)

        assert WebhookEvent.objects.count() == 1

    def test_replay_on_completed_session(self, post_razorpay, completed_session, host):
        response = post_razorpay(
            razorpay_capture_body(completed_session.gateway_order_id, "pay_again"),
            event_id="evt_late",
        )

        assert response.status_code == 200
        assert response.json()["captured"] is False
        session = Session.objects.get(pk=completed_session.pk)
        assert session.status == SessionStatus.COMPLETED
        assert session.gateway_capture_id == "pay_test_held"
        assert Wallet.objects.get(host=host).pending_earnings == 500

    def test_unhandled_event_type(self, post_razorpay, db):
        body = json.dumps({"event": "order.paid", "payload": {}}).encode()

        response = post_razorpay(body)

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_get_not_allowed(self, client):
        assert client.get(RAZORPAY_URL).status_code == 405


class TestPayPalWebhook:
    def test_capture(self, post_paypal, seeker, host):
        from payments.tests.factories import SessionFactory

        session = SessionFactory(
            seeker=seeker, host=host, gateway="paypal", gateway_order_id="5O190127TN364715T"
        )

        response = post_paypal(paypal_capture_body("5O190127TN364715T", "CAP-9", event_id="WH-1"))

        assert response.status_code == 200
        assert response.json()["captured"] is True
        session = Session.objects.get(pk=session.pk)
        assert session.gateway_capture_id == "CAP-9"
        assert WebhookEvent.objects.get(event_id="WH-1").gateway == "paypal"

    def test_bad_signature(self, post_paypal, sign_paypal, pending_session):
        headers = sign_paypal(b"{}")
        body = paypal_capture_body(pending_session.gateway_order_id)

        response = post_paypal(body, headers=headers)

        assert response.status_code == 401
        assert not WebhookEvent.objects.exists()

    def test_missing_headers(self, post_paypal, pending_session):
        response = post_paypal(paypal_capture_body(pending_session.gateway_order_id), headers={})

        assert response.status_code == 401

    def test_missing_event_type(self, post_paypal, db):
        response = post_paypal(json.dumps({"id": "WH-2", "resource": {}}).encode())

        assert response.status_code == 400

    def test_unknown_order(self, post_paypal, db):
        response = post_paypal(paypal_capture_body("ORDER-NOBODY"))

        assert response.status_code == 404

    def test_duplicate_event(self, post_paypal, pending_session):
        body = paypal_capture_body(pending_session.gateway_order_id, event_id="WH-3")
        post_paypal(body)

        response = post_paypal(body)

        assert response.status_code == 200
        assert response.json()["message"] == "Event already processed"

"""Payload and certificate builders shared by the webhook tests."""

import json
import uuid
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID

RAZORPAY_SECRET = "whsec_test_razorpay"
PAYPAL_WEBHOOK_ID = "WH-TEST-0001"
PAYPAL_CERT_URL = "https://api.paypal.com/v1/notifications/certs/CERT-test"


def build_certificate(private_key, common_name, not_before=None, not_after=None):
    now = datetime.now(timezone.utc)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=30))
        .sign(private_key, hashes.SHA256())
    )


def razorpay_capture_body(order_id: str, payment_id: str = "pay_test_001") -> bytes:
    return json.dumps(
        {
            "entity": "event",
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {
                        "id": payment_id,
                        "order_id": order_id,
                        "status": "captured",
                    }
                }
            },
        }
    ).encode()


def paypal_capture_body(order_id: str, capture_id: str = "CAPTURE-001", event_id=None) -> bytes:
    return json.dumps(
        {
            "id": event_id or f"WH-{uuid.uuid4().hex[:12]}",
            "event_type": "PAYMENT.CAPTURE.COMPLETED",
            "resource": {
                "id": capture_id,
                "status": "COMPLETED",
                "supplementary_data": {"related_ids": {"order_id": order_id}},
            },
        }
    ).encode()

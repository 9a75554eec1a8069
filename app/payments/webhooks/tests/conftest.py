"""
Signing fixtures for webhook tests.

Razorpay bodies are signed with a test secret. PayPal transmissions are
signed with a throwaway RSA key whose self-signed certificate is served
from a mocked certificate URL.
"""

import base64
import hashlib
import hmac
import uuid

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from payments.webhooks.signatures import PayPalSignatureVerifier

from .helpers import PAYPAL_CERT_URL, PAYPAL_WEBHOOK_ID, RAZORPAY_SECRET, build_certificate


@pytest.fixture(scope="session")
def paypal_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def webhook_settings(settings):
    settings.RAZORPAY_WEBHOOK_SECRET = RAZORPAY_SECRET
    settings.PAYPAL_WEBHOOK_ID = PAYPAL_WEBHOOK_ID
    return settings


@pytest.fixture
def sign_razorpay(webhook_settings):
    def sign(body: bytes) -> str:
        return hmac.new(RAZORPAY_SECRET.encode(), body, hashlib.sha256).hexdigest()

    return sign


@pytest.fixture
def paypal_cert(paypal_private_key, mocker):
    """
    Serve a PayPal-looking certificate from PAYPAL_CERT_URL.

    Returns the mock for requests.get so tests can swap the certificate
    or assert on fetches.
    """
    certificate = build_certificate(paypal_private_key, "messageverificationcerts.paypal.com")
    response = mocker.MagicMock()
    response.content = certificate.public_bytes(serialization.Encoding.PEM)
    return mocker.patch(
        "payments.webhooks.signatures.requests.get",
        return_value=response,
    )


@pytest.fixture
def sign_paypal(webhook_settings, paypal_private_key, paypal_cert):
    def sign(body: bytes, transmission_id=None, cert_url=PAYPAL_CERT_URL) -> dict:
        transmission_id = transmission_id or str(uuid.uuid4())
        transmission_time = "2026-10-18T10:00:00Z"
        message = PayPalSignatureVerifier.signed_message(
            transmission_id, transmission_time, PAYPAL_WEBHOOK_ID, body
        )
        signature = paypal_private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
        return {
            "PAYPAL-TRANSMISSION-ID": transmission_id,
            "PAYPAL-TRANSMISSION-TIME": transmission_time,
            "PAYPAL-CERT-URL": cert_url,
            "PAYPAL-TRANSMISSION-SIG": base64.b64encode(signature).decode(),
            "PAYPAL-AUTH-ALGO": "SHA256withRSA",
        }

    return sign

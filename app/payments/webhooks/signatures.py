"""
Webhook signature verification for Razorpay and PayPal.

Verification never raises. Every problem (missing secret, missing
header, bad encoding, unreachable certificate, wrong signature) yields
False, and the caller answers 401 without looking at the payload.

Razorpay:
    X-Razorpay-Signature = hex(HMAC-SHA256(webhook_secret, raw_body))
    compared in constant time.

PayPal:
    The transmission headers are signed with PayPal's certificate
    (SHA256withRSA) over

        <transmission-id>|<transmission-time>|<webhook-id>|<crc32(raw_body)>

    The certificate is fetched from PAYPAL-CERT-URL, which must be https
    on an allow-listed PayPal host, then cached. Its validity window and
    subject are checked before the signature.

Usage:
    from payments.webhooks.signatures import verify

    if not verify(PaymentGateway.RAZORPAY, request.body, request.headers):
        return JsonResponse({"success": False, ...}, status=401)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import zlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import requests
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID
from django.conf import settings
from django.core.cache import cache

from payments.state_machines import PaymentGateway

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


def _lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): v for k, v in headers.items()}


# =============================================================================
# Razorpay
# =============================================================================


class RazorpaySignatureVerifier:
    """HMAC-SHA256 over the raw body with the shared webhook secret."""

    SIGNATURE_HEADER = "x-razorpay-signature"

    def __init__(self, secret: str | None = None):
        self.secret = settings.RAZORPAY_WEBHOOK_SECRET if secret is None else secret

    def expected_signature(self, body: bytes) -> str:
        return hmac.new(self.secret.encode(), body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        if not self.secret:
            logger.error("Razorpay webhook secret is not configured, rejecting webhook")
            return False

        signature = _lower_headers(headers).get(self.SIGNATURE_HEADER)
        if not signature:
            logger.warning("Razorpay webhook missing signature header")
            return False

        if not hmac.compare_digest(
            self.expected_signature(body).encode(), signature.strip().encode()
        ):
            logger.warning("Razorpay webhook signature mismatch")
            return False
        return True


# =============================================================================
# PayPal
# =============================================================================


class PayPalSignatureVerifier:
    """
    Certificate-based verification of PayPal webhook transmissions.

    Args:
        webhook_id: PayPal webhook id (defaults to PAYPAL_WEBHOOK_ID)
        cert_hosts: Hosts allowed to serve the signing certificate
        timeout: Seconds to wait when fetching the certificate
    """

    TRANSMISSION_ID = "paypal-transmission-id"
    TRANSMISSION_TIME = "paypal-transmission-time"
    CERT_URL = "paypal-cert-url"
    TRANSMISSION_SIG = "paypal-transmission-sig"
    AUTH_ALGO = "paypal-auth-algo"

    REQUIRED_HEADERS = (TRANSMISSION_ID, TRANSMISSION_TIME, CERT_URL, TRANSMISSION_SIG, AUTH_ALGO)
    SUPPORTED_ALGORITHMS = ("SHA256withRSA",)
    CERT_SUBJECT_DOMAIN = "paypal.com"
    CACHE_PREFIX = "paypal:webhook-cert:"

    def __init__(
        self,
        webhook_id: str | None = None,
        cert_hosts: Iterable[str] | None = None,
        timeout: int | None = None,
    ):
        self.webhook_id = settings.PAYPAL_WEBHOOK_ID if webhook_id is None else webhook_id
        self.cert_hosts = {
            h.strip().lower() for h in (cert_hosts or settings.PAYPAL_CERT_HOSTS) if h.strip()
        }
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    @staticmethod
    def signed_message(transmission_id: str, transmission_time: str, webhook_id: str, body: bytes) -> bytes:
        """The exact bytes PayPal signs for a transmission."""
        return f"{transmission_id}|{transmission_time}|{webhook_id}|{zlib.crc32(body)}".encode()

    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        if not self.webhook_id:
            logger.error("PayPal webhook id is not configured, rejecting webhook")
            return False

        lowered = _lower_headers(headers)
        missing = [name for name in self.REQUIRED_HEADERS if not lowered.get(name)]
        if missing:
            logger.warning("PayPal webhook missing headers", extra={"missing": missing})
            return False

        algorithm = lowered[self.AUTH_ALGO]
        if algorithm not in self.SUPPORTED_ALGORITHMS:
            logger.warning("PayPal webhook uses unsupported algorithm", extra={"algorithm": algorithm})
            return False

        cert_url = lowered[self.CERT_URL]
        if not self._is_trusted_cert_url(cert_url):
            logger.warning("PayPal webhook certificate URL not trusted", extra={"cert_url": cert_url})
            return False

        try:
            signature = base64.b64decode(lowered[self.TRANSMISSION_SIG], validate=True)
        except (binascii.Error, ValueError):
            logger.warning("PayPal webhook signature is not valid base64")
            return False

        try:
            certificate = self._load_certificate(cert_url)
        except (requests.RequestException, ValueError) as e:
            logger.warning(
                "Could not load PayPal signing certificate",
                extra={"cert_url": cert_url, "error": type(e).__name__},
            )
            return False

        if not self._certificate_is_acceptable(certificate):
            return False

        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            logger.warning("PayPal signing certificate does not carry an RSA key")
            return False

        message = self.signed_message(
            lowered[self.TRANSMISSION_ID],
            lowered[self.TRANSMISSION_TIME],
            self.webhook_id,
            body,
        )
        try:
            public_key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            logger.warning(
                "PayPal webhook signature mismatch",
                extra={"transmission_id": lowered[self.TRANSMISSION_ID]},
            )
            return False
        return True

    def _is_trusted_cert_url(self, cert_url: str) -> bool:
        try:
            parsed = urlparse(cert_url)
        except ValueError:
            return False
        return (
            parsed.scheme == "https"
            and (parsed.hostname or "").lower() in self.cert_hosts
            and parsed.username is None
            and parsed.port in (None, 443)
        )

    def _load_certificate(self, cert_url: str) -> x509.Certificate:
        """
        Fetch (or read from cache) and parse the signing certificate.

        Raises:
            requests.RequestException: Fetch failed
            ValueError: Response is not a PEM certificate
        """
        cache_key = self.CACHE_PREFIX + hashlib.sha256(cert_url.encode()).hexdigest()
        pem = cache.get(cache_key)

        if pem is None:
            response = requests.get(cert_url, timeout=self.timeout)
            response.raise_for_status()
            pem = response.content
            certificate = x509.load_pem_x509_certificate(pem)
            cache.set(cache_key, pem, settings.PAYPAL_CERT_CACHE_SECONDS)
            return certificate

        return x509.load_pem_x509_certificate(pem)

    def _certificate_is_acceptable(self, certificate: x509.Certificate) -> bool:
        now = datetime.now(timezone.utc)
        if not certificate.not_valid_before_utc <= now <= certificate.not_valid_after_utc:
            logger.warning("PayPal signing certificate is outside its validity window")
            return False

        common_names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        if not any(self._is_paypal_name(str(cn.value)) for cn in common_names):
            logger.warning("PayPal signing certificate subject is not PayPal")
            return False
        return True

    @classmethod
    def _is_paypal_name(cls, name: str) -> bool:
        name = name.lower()
        return name == cls.CERT_SUBJECT_DOMAIN or name.endswith("." + cls.CERT_SUBJECT_DOMAIN)


# =============================================================================
# Entry point
# =============================================================================


def get_verifier(gateway: str) -> RazorpaySignatureVerifier | PayPalSignatureVerifier:
    if gateway == PaymentGateway.RAZORPAY:
        return RazorpaySignatureVerifier()
    if gateway == PaymentGateway.PAYPAL:
        return PayPalSignatureVerifier()
    raise ValueError(f"Unsupported gateway '{gateway}'")


def verify(gateway: str, raw_body: bytes, headers: Mapping[str, str]) -> bool:
    """
    Check that a webhook body was sent by the given gateway.

    Args:
        gateway: PaymentGateway value
        raw_body: Request body exactly as received
        headers: Request headers (any case)

    Returns:
        True only if the signature verified
    """
    try:
        verifier = get_verifier(gateway)
    except ValueError:
        logger.warning("Webhook for unsupported gateway rejected", extra={"gateway": gateway})
        return False
    return verifier.verify(raw_body, headers)


__all__ = [
    "PayPalSignatureVerifier",
    "RazorpaySignatureVerifier",
    "get_verifier",
    "verify",
]

"""
Webhook endpoint views for Razorpay and PayPal.

Each view:
1. Verifies the signature over the raw body (401 on failure, payload unread)
2. Creates/retrieves the WebhookEvent audit row (idempotent per gateway event id)
3. Dispatches the event to its handler synchronously
4. Maps the outcome to an HTTP status

Responses always use {"success": bool, ...}:
- 200: processed, replayed, or an event type we do not handle
- 400: malformed payload
- 401: signature verification failed
- 404: referenced session or payout not found
- 500: anything else

Usage:
    from payments.webhooks.views import paypal_webhook, razorpay_webhook

    urlpatterns = [
        path("webhooks/razorpay/", razorpay_webhook, name="razorpay_webhook"),
        path("webhooks/paypal/", paypal_webhook, name="paypal_webhook"),
    ]
"""

from __future__ import annotations

import hashlib
import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.exceptions import BaseApplicationError, exception_status

from payments.models import WebhookEvent
from payments.state_machines import PaymentGateway, WebhookEventStatus
from payments.webhooks.handlers import dispatch_webhook
from payments.webhooks.signatures import verify

logger = logging.getLogger(__name__)

RAZORPAY_EVENT_ID_HEADER = "X-Razorpay-Event-Id"


def _error(message: str, status: int, error_code: str | None = None) -> JsonResponse:
    body = {"success": False, "error": message}
    if error_code:
        body["error_code"] = error_code
    return JsonResponse(body, status=status)


def _process(gateway: str, event_type: str, event_id: str, payload: dict) -> JsonResponse:
    log_extra = {"gateway": gateway, "event_id": event_id, "event_type": event_type}
    logger.info(f"Received {gateway} webhook: {event_type}", extra=log_extra)

    webhook_event, created = WebhookEvent.objects.get_or_create(
        gateway=gateway,
        event_id=event_id,
        defaults={
            "event_type": event_type,
            "payload": payload,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info("Webhook already processed, returning success", extra=log_extra)
        return JsonResponse({"success": True, "message": "Event already processed"})

    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        status = exception_status(e)
        if isinstance(e, BaseApplicationError):
            logger.warning(
                "Webhook rejected",
                extra={**log_extra, "error_code": e.error_code, "status": status},
            )
            message, error_code = e.message, e.error_code
        else:
            logger.error(
                f"Webhook processing failed: {type(e).__name__}",
                extra=log_extra,
                exc_info=True,
            )
            message, error_code = "Webhook processing failed", "INTERNAL_ERROR"

        webhook_event.mark_failed(message)
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        return _error(message, status, error_code)

    webhook_event.mark_processed()
    webhook_event.save(update_fields=["status", "processed_at", "error_message", "updated_at"])

    body = {"success": True, "message": "Event processed"}
    if isinstance(result.data, dict):
        body.update(result.data)
    return JsonResponse(body)


def _parse(raw_body: bytes) -> dict | None:
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _body_digest(raw_body: bytes) -> str:
    return hashlib.sha256(raw_body).hexdigest()


@csrf_exempt
@require_POST
def razorpay_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive Razorpay webhooks.

    Signature: X-Razorpay-Signature, hex HMAC-SHA256 of the raw body.
    Razorpay sends the event id in X-Razorpay-Event-Id; redeliveries
    without it are keyed by a digest of the body.
    """
    raw_body = request.body
    if not verify(PaymentGateway.RAZORPAY, raw_body, request.headers):
        return _error("Invalid signature", 401, "INVALID_WEBHOOK_SIGNATURE")

    payload = _parse(raw_body)
    if payload is None or not payload.get("event"):
        logger.warning("Razorpay webhook with malformed payload")
        return _error("Invalid payload", 400, "INVALID_PAYLOAD")

    event_id = request.headers.get(RAZORPAY_EVENT_ID_HEADER) or _body_digest(raw_body)
    try:
        return _process(PaymentGateway.RAZORPAY, payload["event"], event_id, payload)
    except Exception:
        logger.error("Razorpay webhook bookkeeping failed", exc_info=True)
        return _error("Webhook processing failed", 500, "INTERNAL_ERROR")


@csrf_exempt
@require_POST
def paypal_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive PayPal webhooks.

    Signature: PAYPAL-TRANSMISSION-* headers verified against PayPal's
    signing certificate. The event id is the payload's "id".
    """
    raw_body = request.body
    if not verify(PaymentGateway.PAYPAL, raw_body, request.headers):
        return _error("Invalid signature", 401, "INVALID_WEBHOOK_SIGNATURE")

    payload = _parse(raw_body)
    if payload is None or not payload.get("event_type"):
        logger.warning("PayPal webhook with malformed payload")
        return _error("Invalid payload", 400, "INVALID_PAYLOAD")

    event_id = payload.get("id") or _body_digest(raw_body)
    try:
        return _process(PaymentGateway.PAYPAL, payload["event_type"], event_id, payload)
    except Exception:
        logger.error("PayPal webhook bookkeeping failed", exc_info=True)
        return _error("Webhook processing failed", 500, "INTERNAL_ERROR")

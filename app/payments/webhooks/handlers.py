"""
Webhook event handlers for Razorpay and PayPal events.

This module provides a handler registry and implementations for the
gateway events the escrow engine reacts to.

Handlers raise the ledger's typed errors (PaymentNotFoundError etc.);
the webhook views map them to HTTP statuses. Replays are detected from
current session/payout state, so running a handler twice is harmless.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.db import transaction

from core.services import ServiceResult

from payments.exceptions import PaymentNotFoundError, PaymentValidationError
from payments.ledger import SessionLedger, WalletLedger
from payments.models import Payout, WebhookEvent
from payments.state_machines import PayoutState

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: Gateway event type (e.g. "payment.captured")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged with success so the gateway
    stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)
    log_extra = {"gateway": webhook_event.gateway, "event_id": webhook_event.event_id}

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra=log_extra,
        )
        return ServiceResult.success(None)

    logger.info(f"Dispatching {webhook_event.event_type} to handler", extra=log_extra)
    return handler(webhook_event)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


# =============================================================================
# Capture Handlers
# =============================================================================


def _capture_and_hold(order_id: str | None, capture_id: str | None) -> ServiceResult:
    if not order_id:
        raise PaymentValidationError(
            "Webhook payload has no order reference",
            error_code="MISSING_ORDER_ID",
        )

    result = SessionLedger.record_capture(order_id, capture_id)
    SessionLedger.hold_in_escrow(result.session.id)

    return ServiceResult.success(
        {
            "session_id": str(result.session.id),
            "captured": result.captured,
        }
    )


@register_handler("payment.captured")
def handle_razorpay_payment_captured(webhook_event: WebhookEvent) -> ServiceResult:
    """Razorpay: payload.payment.entity carries the payment and its order."""
    entity = _dig(webhook_event.payload, "payload", "payment", "entity") or {}
    return _capture_and_hold(entity.get("order_id"), entity.get("id"))


@register_handler("PAYMENT.CAPTURE.COMPLETED")
def handle_paypal_capture_completed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    PayPal: resource is the capture.

    The order id sits under supplementary_data.related_ids; older
    payloads lack it, in which case the capture id is tried as the order
    reference.
    """
    resource = _dig(webhook_event.payload, "resource") or {}
    capture_id = resource.get("id")
    order_id = _dig(resource, "supplementary_data", "related_ids", "order_id") or capture_id
    return _capture_and_hold(order_id, capture_id)


# =============================================================================
# Payout Handlers
# =============================================================================


def _get_payout(external_payout_id: str | None) -> Payout:
    payout = (
        Payout.objects.filter(external_payout_id=external_payout_id).first()
        if external_payout_id
        else None
    )
    if payout is None:
        raise PaymentNotFoundError(
            "Payout not found",
            error_code="PAYOUT_NOT_FOUND",
            details={"external_payout_id": external_payout_id},
        )
    return payout


def _complete_payout(external_payout_id: str | None) -> ServiceResult:
    payout = _get_payout(external_payout_id)

    with transaction.atomic():
        payout = Payout.objects.select_for_update().get(pk=payout.pk)
        if payout.status != PayoutState.PROCESSING:
            logger.info(
                "Payout already final, ignoring event",
                extra={"payout_id": str(payout.id), "status": payout.status},
            )
            return ServiceResult.success({"payout_id": str(payout.id), "status": payout.status})
        payout.complete()
        payout.save()

    logger.info("Payout completed", extra={"payout_id": str(payout.id)})
    return ServiceResult.success({"payout_id": str(payout.id), "status": payout.status})


def _fail_payout(external_payout_id: str | None, reason: str) -> ServiceResult:
    """Mark the payout failed and give the host their balance back."""
    payout = _get_payout(external_payout_id)

    with transaction.atomic():
        payout = Payout.objects.select_for_update().get(pk=payout.pk)
        if payout.status != PayoutState.PROCESSING:
            return ServiceResult.success({"payout_id": str(payout.id), "status": payout.status})
        payout.fail(reason)
        # Money never left, so there is no debit left to reconcile
        payout.requires_reconciliation = False
        payout.save()
        WalletLedger.reverse_payout_debit(payout)

    logger.warning(
        "Payout failed at gateway",
        extra={"payout_id": str(payout.id), "reason": reason},
    )
    return ServiceResult.success({"payout_id": str(payout.id), "status": payout.status})


@register_handler("transfer.processed")
def handle_razorpay_transfer_processed(webhook_event: WebhookEvent) -> ServiceResult:
    entity = _dig(webhook_event.payload, "payload", "transfer", "entity") or {}
    return _complete_payout(entity.get("id"))


@register_handler("transfer.failed")
def handle_razorpay_transfer_failed(webhook_event: WebhookEvent) -> ServiceResult:
    entity = _dig(webhook_event.payload, "payload", "transfer", "entity") or {}
    reason = _dig(entity, "error", "description") or "Transfer failed"
    return _fail_payout(entity.get("id"), reason)


@register_handler("PAYMENT.PAYOUTSBATCH.SUCCESS")
def handle_paypal_payouts_batch_success(webhook_event: WebhookEvent) -> ServiceResult:
    batch_id = _dig(webhook_event.payload, "resource", "batch_header", "payout_batch_id")
    return _complete_payout(batch_id)


@register_handler("PAYMENT.PAYOUTSBATCH.DENIED")
def handle_paypal_payouts_batch_denied(webhook_event: WebhookEvent) -> ServiceResult:
    batch_id = _dig(webhook_event.payload, "resource", "batch_header", "payout_batch_id")
    return _fail_payout(batch_id, "Payout batch denied")

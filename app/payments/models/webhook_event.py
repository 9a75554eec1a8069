"""
WebhookEvent model: audit trail of verified gateway webhooks.

Only webhooks that passed signature verification are stored. The event
row records what arrived and how processing went; replay safety itself
comes from the session state checks in the session ledger, so a
redelivered event is simply processed again as a no-op.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        gateway=PaymentGateway.RAZORPAY,
        event_id=request.headers.get("x-razorpay-event-id") or body_digest,
        defaults={"event_type": "payment.captured", "payload": payload},
    )
    event.mark_processing()
    event.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentGateway, WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One verified webhook delivery from a gateway.

    Fields:
        gateway: Gateway that sent the webhook
        event_id: Gateway event id (unique per gateway)
        event_type: e.g. 'payment.captured' or 'PAYMENT.CAPTURE.COMPLETED'
        payload: Parsed JSON body
        status: Processing status
        processed_at: When processing last succeeded
        error_message: Last processing error
        retry_count: Number of processing attempts (redeliveries included)
    """

    gateway = models.CharField(max_length=16, choices=PaymentGateway.choices)

    event_id = models.CharField(
        max_length=255,
        help_text="Gateway event id, or a body digest when the gateway sends none",
    )

    event_type = models.CharField(max_length=100, db_index=True)

    payload = models.JSONField()

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        constraints = [
            models.UniqueConstraint(
                fields=["gateway", "event_id"],
                name="webhook_event_unique_per_gateway",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.gateway}:{self.event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    def mark_processing(self) -> None:
        """Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

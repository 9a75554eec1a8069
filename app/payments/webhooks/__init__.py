"""
Webhook handling for payment events from Razorpay and PayPal.

Webhooks are verified against the raw body, stored idempotently as
WebhookEvent rows, and processed synchronously so the gateway learns
the outcome from the HTTP status.

Usage:
    from payments.webhooks import paypal_webhook, razorpay_webhook
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.signatures import verify
from payments.webhooks.views import paypal_webhook, razorpay_webhook

__all__ = [
    "dispatch_webhook",
    "paypal_webhook",
    "razorpay_webhook",
    "register_handler",
    "verify",
]

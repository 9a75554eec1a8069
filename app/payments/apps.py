"""
Payments app configuration.

This app provides the escrow and settlement engine:
- Session capture, escrow hold, completion and settlement
- Host wallets and payouts
- Razorpay and PayPal integration (orders, payouts, webhooks)
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

"""
Payment admin configuration.

Registers the escrow models with the Django admin. Money fields and
state fields are read-only: balances move only through the ledgers and
states only through their transitions. The only editable data is a
wallet's payout destination.
"""

from django.contrib import admin

from payments.models import Payout, Session, Transaction, Wallet, WebhookEvent


def _format_amount(amount: int, currency: str) -> str:
    return f"{amount / 100:.2f} {currency}"


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    """
    Admin configuration for Session.

    State changes go through SessionLedger, never the admin.
    """

    list_display = [
        "id",
        "seeker",
        "host",
        "session_type",
        "amount_display",
        "status",
        "payment_status",
        "settlement_status",
        "ended_at",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "settlement_status", "gateway", "session_type"]
    search_fields = ["id", "gateway_order_id", "gateway_capture_id", "seeker__email", "host__email"]
    readonly_fields = [f.name for f in Session._meta.concrete_fields]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "seeker", "host", "session_type")}),
        ("Payment", {"fields": ("amount_paid", "currency", "gateway", "gateway_order_id", "gateway_capture_id")}),
        ("Status", {"fields": ("status", "payment_status", "settlement_status")}),
        (
            "Split",
            {"fields": ("platform_share", "host_share", "penalty_applied", "satisfaction_score")},
        ),
        ("Timestamps", {"fields": ("ended_at", "settled_at", "created_at", "updated_at", "version")}),
    )

    def amount_display(self, obj: Session) -> str:
        return _format_amount(obj.amount_paid, obj.currency)

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    """Balances are read-only; payout destinations can be linked here."""

    list_display = [
        "id",
        "host",
        "currency",
        "pending_earnings",
        "withdrawal_balance",
        "total_earned",
        "total_withdrawn",
        "paypal_verified",
    ]
    list_filter = ["currency", "paypal_verified"]
    search_fields = ["id", "host__email", "razorpay_account_id", "paypal_email"]
    readonly_fields = [
        "id",
        "host",
        "currency",
        "pending_earnings",
        "withdrawal_balance",
        "total_earned",
        "total_withdrawn",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Transactions are write-once."""

    list_display = ["id", "user", "type", "amount", "currency", "status", "created_at"]
    list_filter = ["type", "status", "currency", "gateway"]
    search_fields = ["id", "user__email", "external_reference", "idempotency_key"]
    readonly_fields = [f.name for f in Transaction._meta.concrete_fields]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "wallet",
        "amount_display",
        "method",
        "status",
        "requires_reconciliation",
        "created_at",
    ]
    list_filter = ["status", "method", "requires_reconciliation"]
    search_fields = ["id", "external_payout_id", "wallet__host__email"]
    readonly_fields = [f.name for f in Payout._meta.concrete_fields]
    ordering = ["-created_at"]

    def amount_display(self, obj: Payout) -> str:
        return _format_amount(obj.amount, obj.currency)

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    """

    list_display = [
        "id",
        "gateway",
        "event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["gateway", "status", "event_type", "created_at"]
    search_fields = ["id", "event_id", "event_type"]
    readonly_fields = [f.name for f in WebhookEvent._meta.concrete_fields]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

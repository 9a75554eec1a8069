"""
Serializers for the payments API.

Read serializers expose the escrow state the UI displays; write
serializers only validate request shape. Business rules (pricing,
state transitions, balance checks) live in the services and ledgers.

Serializer Hierarchy:
    OrderCreateSerializer / OrderResponseSerializer: Session purchase
    SessionSerializer: Session with its split and escrow statuses
    SessionCompleteSerializer: Satisfaction score on completion
    SettlementRunSerializer / SettlementResultSerializer: Staff settlement trigger
    PayoutRequestSerializer / PayoutSerializer: Host payouts
    WalletSerializer: Host balances
    TransactionSerializer: Audit trail entries
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payout, Session, Transaction, Wallet
from payments.penalty import MAX_SCORE, MIN_SCORE
from payments.state_machines import PaymentGateway, SessionType


# =============================================================================
# Sessions
# =============================================================================


class OrderCreateSerializer(serializers.Serializer):
    host_id = serializers.IntegerField(min_value=1)
    session_type = serializers.ChoiceField(choices=SessionType.choices)
    gateway = serializers.ChoiceField(choices=PaymentGateway.choices)
    currency = serializers.CharField(max_length=3, required=False)

    def validate_currency(self, value: str) -> str:
        return value.upper()


class SessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Session
        fields = [
            "id",
            "seeker_id",
            "host_id",
            "session_type",
            "amount_paid",
            "currency",
            "gateway",
            "gateway_order_id",
            "status",
            "payment_status",
            "settlement_status",
            "platform_share",
            "host_share",
            "penalty_applied",
            "satisfaction_score",
            "ended_at",
            "settled_at",
            "created_at",
        ]
        read_only_fields = fields


class OrderResponseSerializer(serializers.Serializer):
    session = SessionSerializer()
    approval_url = serializers.URLField(allow_null=True)


class SessionCompleteSerializer(serializers.Serializer):
    # Range is checked by the ledger, after the already-completed check
    satisfaction_score = serializers.IntegerField(
        help_text=f"Integer from {MIN_SCORE} to {MAX_SCORE}",
    )


# =============================================================================
# Settlement
# =============================================================================


class SettlementRunSerializer(serializers.Serializer):
    """Empty body runs a batch; session_id settles one session."""

    session_id = serializers.UUIDField(required=False)
    hold_hours = serializers.IntegerField(min_value=0, required=False)


class SettlementResultSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    status = serializers.CharField()
    amount = serializers.IntegerField()
    error = serializers.CharField(allow_null=True, required=False)


# =============================================================================
# Wallet & Payouts
# =============================================================================


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = [
            "id",
            "currency",
            "pending_earnings",
            "withdrawal_balance",
            "total_earned",
            "total_withdrawn",
            "razorpay_account_id",
            "paypal_email",
            "paypal_verified",
        ]
        read_only_fields = fields


class PayoutRequestSerializer(serializers.Serializer):
    amount = serializers.IntegerField(help_text="Minor currency units")
    method = serializers.ChoiceField(choices=PaymentGateway.choices)
    currency = serializers.CharField(max_length=3, required=False)
    request_id = serializers.UUIDField(
        required=False,
        help_text="Reuse when retrying the same request",
    )

    def validate_currency(self, value: str) -> str:
        return value.upper()


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "amount",
            "currency",
            "method",
            "external_payout_id",
            "status",
            "requires_reconciliation",
            "failure_reason",
            "created_at",
            "completed_at",
            "failed_at",
        ]
        read_only_fields = fields


# =============================================================================
# Transactions
# =============================================================================


class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transaction
        fields = [
            "id",
            "session_id",
            "type",
            "amount",
            "currency",
            "gateway",
            "external_reference",
            "status",
            "description",
            "created_at",
        ]
        read_only_fields = fields

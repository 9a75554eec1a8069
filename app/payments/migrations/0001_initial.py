import uuid

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Session",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "session_type",
                    models.CharField(
                        choices=[
                            ("love_chat", "Love Chat"),
                            ("voice_call", "Voice Call"),
                            ("video_call", "Video Call"),
                            ("premium_experience", "Premium Experience"),
                        ],
                        help_text="Offering tier booked by the seeker",
                        max_length=32,
                    ),
                ),
                (
                    "amount_paid",
                    models.PositiveBigIntegerField(
                        help_text="Amount paid in minor currency units (paise, cents)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="INR",
                        help_text="ISO 4217 currency code (uppercase)",
                        max_length=3,
                    ),
                ),
                (
                    "gateway",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("paypal", "PayPal")],
                        help_text="Gateway that collected the payment",
                        max_length=16,
                    ),
                ),
                (
                    "gateway_order_id",
                    models.CharField(
                        help_text="Order reference issued by the gateway at order creation",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "gateway_capture_id",
                    models.CharField(
                        blank=True,
                        help_text="Capture/payment reference, set once the capture webhook arrives",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending_payment", "Pending Payment"),
                            ("payment_received", "Payment Received"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="pending_payment",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "payment_status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("captured", "Captured"),
                            ("held_in_escrow", "Held in Escrow"),
                            ("released", "Released"),
                        ],
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "settlement_status",
                    django_fsm.FSMField(
                        choices=[("pending", "Pending"), ("completed", "Completed")],
                        db_index=True,
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("platform_share", models.PositiveBigIntegerField(default=0)),
                ("host_share", models.PositiveBigIntegerField(default=0)),
                (
                    "penalty_applied",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Base host share minus final host share"
                    ),
                ),
                (
                    "satisfaction_score",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Seeker rating 0-100, submitted when the session ends",
                        null=True,
                        validators=[django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                ("ended_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "host",
                    models.ForeignKey(
                        help_text="User providing the session and earning the host share",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions_as_host",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "seeker",
                    models.ForeignKey(
                        help_text="User who paid for the session",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions_as_seeker",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Session",
                "verbose_name_plural": "Sessions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "settlement_status", "ended_at"],
                        name="session_settlement_scan_idx",
                    ),
                    models.Index(fields=["host", "status"], name="session_host_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("platform_share__lte", models.F("amount_paid") - models.F("host_share"))
                        ),
                        name="session_shares_within_amount",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("settlement_status", "pending"),
                            ("platform_share", models.F("amount_paid") - models.F("host_share")),
                            _connector="OR",
                        ),
                        name="session_settled_shares_exact",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("penalty_applied__gte", 0)),
                        name="session_penalty_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("satisfaction_score__isnull", True),
                            models.Q(("satisfaction_score__gte", 0), ("satisfaction_score__lte", 100)),
                            _connector="OR",
                        ),
                        name="session_score_in_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Wallet",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("currency", models.CharField(default="INR", max_length=3)),
                ("pending_earnings", models.PositiveBigIntegerField(default=0)),
                ("withdrawal_balance", models.PositiveBigIntegerField(default=0)),
                ("total_earned", models.PositiveBigIntegerField(default=0)),
                ("total_withdrawn", models.PositiveBigIntegerField(default=0)),
                ("razorpay_account_id", models.CharField(blank=True, default="", max_length=64)),
                ("paypal_email", models.EmailField(blank=True, default="", max_length=254)),
                ("paypal_verified", models.BooleanField(default=False)),
                (
                    "host",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wallet",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Wallet",
                "verbose_name_plural": "Wallets",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("pending_earnings__gte", 0)),
                        name="wallet_pending_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("withdrawal_balance__gte", 0)),
                        name="wallet_withdrawable_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_earned__gte", 0)),
                        name="wallet_total_earned_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_withdrawn__gte", 0)),
                        name="wallet_total_withdrawn_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("credit_purchase", "Credit Purchase"),
                            ("session_earning", "Session Earning"),
                            ("platform_fee", "Platform Fee"),
                            ("penalty_deduction", "Penalty Deduction"),
                            ("payout", "Payout"),
                            ("payout_reversal", "Payout Reversal"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("amount", models.PositiveBigIntegerField(help_text="Minor currency units")),
                ("currency", models.CharField(max_length=3)),
                (
                    "gateway",
                    models.CharField(
                        blank=True,
                        choices=[("razorpay", "Razorpay"), ("paypal", "PayPal")],
                        default="",
                        max_length=16,
                    ),
                ),
                ("external_reference", models.CharField(blank=True, default="", max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="completed",
                        max_length=16,
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "idempotency_key",
                    models.CharField(
                        help_text="Operation key; a second write with the same key is rejected",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="payments.session",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="transaction_user_idx"),
                    models.Index(fields=["session", "type"], name="transaction_session_type_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("amount", models.PositiveBigIntegerField(help_text="Minor currency units")),
                ("currency", models.CharField(max_length=3)),
                (
                    "method",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("paypal", "PayPal")],
                        max_length=16,
                    ),
                ),
                (
                    "external_payout_id",
                    models.CharField(blank=True, max_length=255, null=True, unique=True),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="processing",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("requires_reconciliation", models.BooleanField(db_index=True, default=False)),
                ("reconciled_at", models.DateTimeField(blank=True, null=True)),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "wallet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to="payments.wallet",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["wallet", "status"], name="payout_wallet_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payout_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "gateway",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("paypal", "PayPal")],
                        max_length=16,
                    ),
                ),
                (
                    "event_id",
                    models.CharField(
                        help_text="Gateway event id, or a body digest when the gateway sends none",
                        max_length=255,
                    ),
                ),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                ("payload", models.JSONField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="webhook_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("gateway", "event_id"),
                        name="webhook_event_unique_per_gateway",
                    ),
                ],
            },
        ),
    ]

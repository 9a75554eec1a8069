"""
Factory Boy factories for payment test data.

Factories create rows directly in their initial state. Sessions in later
states are best built through SessionLedger (see the fixtures in
payments/conftest.py) so wallets and transactions stay consistent.

Usage:
    from payments.tests.factories import PayoutFactory, SessionFactory, WalletFactory

    session = SessionFactory(amount_paid=1000)
    wallet = WalletFactory(host=session.host, withdrawal_balance=50000)
    payout = PayoutFactory(wallet=wallet)
"""

import factory

from authentication.tests.factories import HostFactory, UserFactory
from payments.models import Payout, Session, Wallet, WebhookEvent
from payments.state_machines import PaymentGateway, SessionType, WebhookEventStatus


class SessionFactory(factory.django.DjangoModelFactory):
    """
    Session awaiting payment, 1000 minor units split 50/50.

    Example:
        session = SessionFactory(gateway=PaymentGateway.PAYPAL, currency="USD")
    """

    class Meta:
        model = Session

    seeker = factory.SubFactory(UserFactory)
    host = factory.SubFactory(HostFactory)
    session_type = SessionType.VOICE_CALL
    amount_paid = 1000
    currency = "INR"
    gateway = PaymentGateway.RAZORPAY
    gateway_order_id = factory.Sequence(lambda n: f"order_test_{n:06d}")
    platform_share = factory.LazyAttribute(lambda o: o.amount_paid - o.amount_paid // 2)
    host_share = factory.LazyAttribute(lambda o: o.amount_paid // 2)


class WalletFactory(factory.django.DjangoModelFactory):
    """
    Host wallet with a linked Razorpay account and empty balances.

    Example:
        wallet = WalletFactory(withdrawal_balance=50000)
        wallet = WalletFactory(paypal_email="host@example.com", paypal_verified=True)
    """

    class Meta:
        model = Wallet

    host = factory.SubFactory(HostFactory)
    currency = "INR"
    razorpay_account_id = factory.Sequence(lambda n: f"acc_test_{n:06d}")


class PayoutFactory(factory.django.DjangoModelFactory):
    """Processing payout without a debit; pair with WalletLedger as needed."""

    class Meta:
        model = Payout

    wallet = factory.SubFactory(WalletFactory)
    amount = 10000
    currency = "INR"
    method = PaymentGateway.RAZORPAY
    external_payout_id = factory.Sequence(lambda n: f"trf_test_{n:06d}")
    metadata = factory.LazyFunction(dict)


class WebhookEventFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = WebhookEvent

    gateway = PaymentGateway.RAZORPAY
    event_id = factory.Sequence(lambda n: f"evt_test_{n:06d}")
    event_type = "payment.captured"
    payload = factory.LazyFunction(dict)
    status = WebhookEventStatus.PENDING

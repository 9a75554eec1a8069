"""
Shared fixtures for every payments test package.

Redis is replaced by an in-memory fake for all payments tests, so
DistributedLock keeps its mutual exclusion without a server. Gateway
calls go through the gateway_adapter fixture.

Usage:
    def test_payout(funded_wallet, gateway_adapter):
        payout = PayoutService.request_payout(funded_wallet.host_id, 15000, "razorpay")
        gateway_adapter.create_payout.assert_called_once()
"""

import uuid

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import HostFactory, UserFactory
from payments.adapters import OrderResult, PayoutResult
from payments.ledger import SessionLedger
from payments.services import OrderService, PayoutService
from payments.tests.factories import SessionFactory, WalletFactory


class FakeRedis:
    """Just enough of redis-py for DistributedLock."""

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return False
        self.store[key] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) != token:
            return 0
        del self.store[key]
        return 1


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    redis = FakeRedis()
    mocker.patch("payments.locks.get_redis_connection", return_value=redis)
    return redis


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def seeker(db):
    return UserFactory()


@pytest.fixture
def host(db):
    return HostFactory()


@pytest.fixture
def staff_user(db):
    return UserFactory(is_staff=True)


# =============================================================================
# Sessions in each lifecycle state
# =============================================================================


@pytest.fixture
def pending_session(db, seeker, host):
    """Session awaiting payment: 1000 INR, 500/500 base split."""
    return SessionFactory(seeker=seeker, host=host, amount_paid=1000)


@pytest.fixture
def held_session(pending_session):
    """Captured and held in escrow; host has 500 pending."""
    SessionLedger.record_capture(pending_session.gateway_order_id, "pay_test_held")
    SessionLedger.hold_in_escrow(pending_session.id)
    return SessionLedger.get_session(pending_session.id)


@pytest.fixture
def completed_session(held_session):
    """Completed with a satisfaction score above the threshold."""
    return SessionLedger.complete_session(held_session.id, 95).session


# =============================================================================
# Wallets
# =============================================================================


@pytest.fixture
def funded_wallet(host):
    """Wallet with 50000 withdrawable and a linked Razorpay account."""
    return WalletFactory(host=host, withdrawal_balance=50000, total_earned=50000)


# =============================================================================
# Gateway
# =============================================================================


@pytest.fixture
def gateway_adapter(mocker):
    """
    Stand-in for the gateway adapters used by OrderService and PayoutService.

    Orders get an id derived from the receipt; payouts get a fresh
    transfer id. Override side_effect to simulate gateway failures.
    """
    adapter = mocker.MagicMock()
    adapter.create_order.side_effect = lambda params: OrderResult(
        id=f"order_{params.receipt}",
        status="created",
        amount=params.amount,
        currency=params.currency,
    )
    adapter.create_payout.side_effect = lambda params: PayoutResult(
        id=f"trf_{uuid.uuid4().hex[:14]}",
        status="processing",
        amount=params.amount,
        currency=params.currency,
    )

    OrderService.set_adapter(adapter)
    PayoutService.set_adapter(adapter)
    yield adapter
    OrderService.set_adapter(None)
    PayoutService.set_adapter(None)


# =============================================================================
# API clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def seeker_client(seeker):
    client = APIClient()
    client.force_authenticate(user=seeker)
    return client


@pytest.fixture
def host_client(host):
    client = APIClient()
    client.force_authenticate(user=host)
    return client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client

"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Session, Wallet, Transaction, Payout, WebhookEvent
- test_penalty.py: Satisfaction-weighted split
- test_locks.py: Distributed and row locks
- test_views.py: API endpoint tests
- test_integration.py: Order to payout money flow

Ledger, service, webhook, worker and adapter tests live in the tests/
package next to each module.

Usage:
    pytest payments/
    pytest payments/tests/test_penalty.py
"""

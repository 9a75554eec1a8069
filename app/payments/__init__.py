"""
Payments app: escrow and settlement for paid sessions.

This app handles:
- Session orders through Razorpay or PayPal
- Capture webhooks that credit the host's pending earnings
- Satisfaction-based penalties on completion
- Settlement of held earnings after the hold period
- Host payouts from the withdrawal balance

Related apps:
    - authentication: User model for seekers and hosts

Usage:
    from payments.ledger import SessionLedger
    from payments.services import PayoutService, SettlementService

    SessionLedger.complete_session(session.id, satisfaction_score=85)
    SettlementService.run_batch()
    PayoutService.request_payout(host.id, 15000, "razorpay")
"""

"""
Payment domain models.

- Session: Financial record of one paid seeker/host interaction
- Wallet: Per-host pending and withdrawable balances
- Transaction: Write-once audit record of each monetary movement
- Payout: Host withdrawal to a linked gateway destination
- WebhookEvent: Verified gateway webhook deliveries
"""

from payments.models.payout import Payout
from payments.models.session import Session
from payments.models.transaction import Transaction
from payments.models.wallet import Wallet
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payout",
    "Session",
    "Transaction",
    "Wallet",
    "WebhookEvent",
]

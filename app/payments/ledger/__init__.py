"""
Ledgers - the only writers of escrow money state.

Public API:
    SessionLedger - Session lifecycle: creation, capture, escrow hold,
        completion and settlement bookkeeping
    WalletLedger - Atomic host wallet balance changes
    record_transaction - Idempotent audit Transaction writes

Types:
    TransactionParams, CaptureResult, CompletionResult, SettlementResult

Usage:
    from payments.ledger import SessionLedger, WalletLedger

    SessionLedger.record_capture(order_id, capture_id)
    WalletLedger.release_to_withdrawable(host.id, session.host_share)
"""

from .records import record_transaction
from .session_ledger import SessionLedger
from .types import CaptureResult, CompletionResult, SettlementResult, TransactionParams
from .wallet_ledger import WalletLedger

__all__ = [
    "CaptureResult",
    "CompletionResult",
    "SessionLedger",
    "SettlementResult",
    "TransactionParams",
    "WalletLedger",
    "record_transaction",
]

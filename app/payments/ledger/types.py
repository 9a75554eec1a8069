"""
Data types passed between the ledgers and their callers.

Types:
    TransactionParams: Parameters for writing one audit Transaction
    CaptureResult: Outcome of SessionLedger.record_capture
    CompletionResult: Outcome of SessionLedger.complete_session
    SettlementResult: Outcome of settling one session

Usage:
    from payments.ledger.types import TransactionParams

    params = TransactionParams(
        user_id=session.host_id,
        type=TransactionType.SESSION_EARNING,
        amount=session.host_share,
        currency=session.currency,
        idempotency_key=f"earning:{session.id}",
        session_id=session.id,
        description="Session earning",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from payments.models import Session
    from payments.penalty import SplitResult


@dataclass
class TransactionParams:
    """
    Parameters for recording an audit Transaction.

    Required Attributes:
        user_id: Owner of the movement (seeker or host)
        type: TransactionType value
        amount: Minor currency units, non-negative
        currency: ISO 4217 code
        idempotency_key: Unique key for the operation

    Optional Attributes:
        session_id: Session the movement belongs to
        gateway: Gateway involved, if any
        external_reference: Gateway id (capture id, payout id)
        status: TransactionStatus value (default completed)
        description: Human-readable description
        metadata: Arbitrary JSON-serializable data
    """

    user_id: int
    type: str
    amount: int
    currency: str
    idempotency_key: str

    session_id: uuid.UUID | None = None
    gateway: str = ""
    external_reference: str = ""
    status: str = "completed"
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("amount must be non-negative")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class CaptureResult:
    """
    Attributes:
        session: The session after the call
        captured: False when the capture was already recorded (replay)
    """

    session: Session
    captured: bool


@dataclass
class CompletionResult:
    session: Session
    split: SplitResult


@dataclass
class SettlementResult:
    """
    Outcome of settling one session.

    status is one of: settled, already_settled, hold_not_elapsed,
    not_found, failed.
    """

    session_id: uuid.UUID
    status: str
    amount: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("settled", "already_settled")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "session_id": str(self.session_id),
            "status": self.status,
            "amount": self.amount,
        }
        if self.error:
            result["error"] = self.error
        return result

"""
Idempotent writes of audit Transactions.

Both ledgers write Transactions through record_transaction() so a
retried operation finds its earlier record instead of writing a second
one.
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from payments.ledger.types import TransactionParams
from payments.models import Transaction

logger = logging.getLogger(__name__)


def record_transaction(params: TransactionParams) -> tuple[Transaction, bool]:
    """
    Write a Transaction unless one with the same idempotency key exists.

    Returns:
        (transaction, created)
    """
    existing = Transaction.objects.filter(idempotency_key=params.idempotency_key).first()
    if existing is not None:
        logger.info(
            "Transaction already recorded",
            extra={"idempotency_key": params.idempotency_key, "transaction_id": str(existing.id)},
        )
        return existing, False

    try:
        # Savepoint so a lost race does not poison the caller's transaction
        with transaction.atomic():
            record = Transaction.objects.create(
                user_id=params.user_id,
                session_id=params.session_id,
                type=params.type,
                amount=params.amount,
                currency=params.currency,
                gateway=params.gateway,
                external_reference=params.external_reference,
                status=params.status,
                description=params.description,
                metadata=params.metadata,
                idempotency_key=params.idempotency_key,
            )
    except IntegrityError:
        record = Transaction.objects.get(idempotency_key=params.idempotency_key)
        return record, False

    return record, True

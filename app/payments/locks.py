"""
Concurrency control for escrow operations.

Two mechanisms, used at different seams:

1. **Distributed Locks** (DistributedLock)
   - Redis mutual exclusion across web and worker processes
   - TTL releases the lock if the holder crashes
   - Used by payout requests, where a balance check and an external
     gateway call must not interleave with a second request for the
     same wallet

2. **Row locks with version check** (lock_for_update)
   - select_for_update on a single row inside the caller's transaction
   - Optional expected version for optimistic conflict detection
   - Used by the session ledger for capture, hold, completion and
     settlement

Wallet balance changes need neither: they are single conditional
UPDATE statements (see payments.ledger.wallet_ledger).

Usage:

    from payments.locks import DistributedLock, wallet_lock_key

    with DistributedLock(wallet_lock_key(wallet.id), ttl=60, timeout=5):
        PayoutService._execute(...)

    from payments.locks import lock_for_update

    with transaction.atomic():
        session = lock_for_update(Session, session_id)
        session.mark_captured()
        session.save()
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.db import models, transaction

from django_redis import get_redis_connection

from payments.exceptions import (
    LockAcquisitionError,
    PaymentNotFoundError,
    StaleRecordError,
)

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

T = TypeVar("T", bound=models.Model)


def wallet_lock_key(wallet_id: Any) -> str:
    """Lock key serializing payout requests for one wallet."""
    return f"payout:wallet:{wallet_id}"


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - TTL prevents deadlocks from crashed processes
        - Token ownership so only the holder can release
        - Blocking (with timeout) and non-blocking acquisition
        - Context manager support

    Example:
        with DistributedLock("payout:wallet:7c1e...", ttl=60, timeout=5.0):
            PayoutService.request_payout(...)

        lock = DistributedLock("settlement:batch", ttl=300, blocking=False)
        try:
            lock.acquire()
        except LockAcquisitionError:
            return  # another worker is already running the batch

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Seconds until the lock auto-releases
        blocking: Wait for the lock instead of failing immediately
        timeout: Maximum wait in seconds when blocking
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: The lock is held elsewhere (non-blocking)
                or could not be obtained within timeout (blocking)
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if not self.blocking:
            if self._try_acquire(redis):
                return True
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )

        deadline = time.monotonic() + self.timeout
        while time.monotonic() < deadline:
            if self._try_acquire(redis):
                return True
            time.sleep(self.POLL_INTERVAL)

        self._token = None
        raise LockAcquisitionError(
            f"Failed to acquire lock '{self.key}' within {self.timeout}s",
            details={"key": self.key, "timeout": self.timeout},
        )

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if this instance holds it.

        Safe to call more than once. The compare-and-delete runs as a Lua
        script so a lock that expired and was taken by someone else is
        left alone.
        """
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


# =============================================================================
# Row Locks
# =============================================================================


def lock_for_update(
    model_class: type[T],
    pk: Any,
    expected_version: int | None = None,
) -> T:
    """
    Lock a single row for the rest of the current transaction.

    Args:
        model_class: Model to lock (must have a `version` field when
            expected_version is given)
        pk: Primary key of the row
        expected_version: If given, the row must still be at this version

    Returns:
        The locked instance

    Raises:
        PaymentNotFoundError: No such row
        StaleRecordError: Row exists but its version moved on

    Note:
        Must be called inside transaction.atomic(); the row lock is held
        until that transaction ends.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("lock_for_update() requires an open transaction")

    model_name = model_class.__name__
    instance = model_class.objects.select_for_update().filter(pk=pk).first()

    if instance is None:
        raise PaymentNotFoundError(
            f"{model_name} {pk} not found",
            error_code=f"{model_name.upper()}_NOT_FOUND",
            details={"pk": str(pk)},
        )

    if expected_version is not None and instance.version != expected_version:
        raise StaleRecordError(
            f"{model_name} {pk} has been modified "
            f"(expected version {expected_version}, current {instance.version})",
            details={
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": instance.version,
            },
        )

    return instance


__all__ = [
    "DistributedLock",
    "lock_for_update",
    "wallet_lock_key",
]

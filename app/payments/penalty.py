"""
Satisfaction-weighted split of a session payment.

compute_split() is pure: no database, no settings access once a policy
is passed in, integer minor units in and out. Decimal arithmetic is used
internally and rounded half-up only when producing the integer result.

Two penalty modes are supported:

    step          penalty = (drop // step_points) * penalty_per_step
    proportional  penalty = base_host * drop * multiplier / 100

where drop = threshold - score. In both modes the penalty is clamped to
[0, base_host], moves from the host share to the platform share, and
platform_share + host_share == amount always holds.

Usage:
    from payments.penalty import compute_split

    split = compute_split(1000, 60)
    split.host_share       # 0
    split.platform_share   # 1000
    split.penalty_applied  # 500
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from payments.exceptions import PaymentValidationError

PENALTY_MODE_STEP = "step"
PENALTY_MODE_PROPORTIONAL = "proportional"
PENALTY_MODES = (PENALTY_MODE_STEP, PENALTY_MODE_PROPORTIONAL)

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class PenaltyPolicy:
    """
    Split and penalty parameters.

    Attributes:
        platform_share_percent: Base platform percentage
        host_share_percent: Base host percentage (sums to 100 with platform)
        satisfaction_threshold: Scores at or above this carry no penalty
        mode: "step" or "proportional"
        penalty_step_points: Score points per penalty step (step mode)
        penalty_per_step: Minor units deducted per step (step mode)
        penalty_multiplier: Percent of base host share per point (proportional mode)
    """

    platform_share_percent: int = 50
    host_share_percent: int = 50
    satisfaction_threshold: int = 90
    mode: str = PENALTY_MODE_STEP
    penalty_step_points: int = 10
    penalty_per_step: int = 300
    penalty_multiplier: int = 2

    def __post_init__(self) -> None:
        if self.platform_share_percent < 0 or self.host_share_percent < 0:
            raise ImproperlyConfigured("Share percentages must be non-negative")
        if self.platform_share_percent + self.host_share_percent != 100:
            raise ImproperlyConfigured(
                "ESCROW_PLATFORM_SHARE_PERCENT and ESCROW_HOST_SHARE_PERCENT must sum to 100"
            )
        if not MIN_SCORE <= self.satisfaction_threshold <= MAX_SCORE:
            raise ImproperlyConfigured("ESCROW_SATISFACTION_THRESHOLD must be within 0-100")
        if self.mode not in PENALTY_MODES:
            raise ImproperlyConfigured(
                f"ESCROW_PENALTY_MODE must be one of {PENALTY_MODES}, got {self.mode!r}"
            )
        if self.penalty_step_points <= 0:
            raise ImproperlyConfigured("ESCROW_PENALTY_STEP_POINTS must be positive")
        if self.penalty_per_step < 0 or self.penalty_multiplier < 0:
            raise ImproperlyConfigured("Penalty amounts must be non-negative")

    @classmethod
    def from_settings(cls) -> PenaltyPolicy:
        return cls(
            platform_share_percent=settings.ESCROW_PLATFORM_SHARE_PERCENT,
            host_share_percent=settings.ESCROW_HOST_SHARE_PERCENT,
            satisfaction_threshold=settings.ESCROW_SATISFACTION_THRESHOLD,
            mode=settings.ESCROW_PENALTY_MODE,
            penalty_step_points=settings.ESCROW_PENALTY_STEP_POINTS,
            penalty_per_step=settings.ESCROW_PENALTY_PER_STEP,
            penalty_multiplier=settings.ESCROW_PENALTY_MULTIPLIER,
        )


@dataclass(frozen=True)
class SplitResult:
    """Outcome of compute_split(), all amounts in minor units."""

    platform_share: int
    host_share: int
    penalty_applied: int
    base_host_share: int

    @property
    def total(self) -> int:
        return self.platform_share + self.host_share


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def base_split(amount: int, policy: PenaltyPolicy | None = None) -> tuple[int, int]:
    """
    Base (platform, host) shares before any penalty.

    The platform share is rounded half-up and the host gets the rest, so
    an odd remainder always lands with the platform.
    """
    policy = policy or PenaltyPolicy.from_settings()
    if amount < 0:
        raise PaymentValidationError(
            "Amount must be non-negative",
            error_code="INVALID_AMOUNT",
            details={"amount": amount},
        )
    platform = _round(Decimal(amount) * policy.platform_share_percent / 100)
    return platform, amount - platform


def _penalty(base_host: int, drop: int, policy: PenaltyPolicy) -> int:
    if policy.mode == PENALTY_MODE_STEP:
        raw = Decimal((drop // policy.penalty_step_points) * policy.penalty_per_step)
    else:
        raw = Decimal(base_host) * drop * policy.penalty_multiplier / 100
    return min(max(_round(raw), 0), base_host)


def compute_split(
    amount: int,
    satisfaction_score: int,
    policy: PenaltyPolicy | None = None,
) -> SplitResult:
    """
    Split a paid amount between platform and host.

    Args:
        amount: Amount paid, in minor currency units
        satisfaction_score: Seeker rating, 0-100
        policy: Split parameters (defaults to the configured policy)

    Returns:
        SplitResult with platform_share + host_share == amount

    Raises:
        PaymentValidationError: Negative amount or score outside [0, 100]
    """
    policy = policy or PenaltyPolicy.from_settings()

    if isinstance(satisfaction_score, bool) or not isinstance(satisfaction_score, int):
        raise PaymentValidationError(
            "Satisfaction score must be an integer",
            error_code="INVALID_SATISFACTION_SCORE",
            details={"satisfaction_score": satisfaction_score},
        )
    if not MIN_SCORE <= satisfaction_score <= MAX_SCORE:
        raise PaymentValidationError(
            "Satisfaction score must be between 0 and 100",
            error_code="INVALID_SATISFACTION_SCORE",
            details={"satisfaction_score": satisfaction_score},
        )

    base_platform, base_host = base_split(amount, policy)

    if satisfaction_score >= policy.satisfaction_threshold:
        return SplitResult(
            platform_share=base_platform,
            host_share=base_host,
            penalty_applied=0,
            base_host_share=base_host,
        )

    drop = policy.satisfaction_threshold - satisfaction_score
    penalty = _penalty(base_host, drop, policy)
    host_share = base_host - penalty

    return SplitResult(
        platform_share=amount - host_share,
        host_share=host_share,
        penalty_applied=penalty,
        base_host_share=base_host,
    )


__all__ = [
    "PENALTY_MODE_PROPORTIONAL",
    "PENALTY_MODE_STEP",
    "PenaltyPolicy",
    "SplitResult",
    "base_split",
    "compute_split",
]

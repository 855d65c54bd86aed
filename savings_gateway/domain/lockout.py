"""Lockout policy - maps consecutive failed PIN attempts to a lockout duration"""

from typing import Iterable, Sequence, Tuple

from savings_gateway.domain.models import LockoutTier

DEFAULT_LOCKOUT_TIERS: Tuple[LockoutTier, ...] = (
    LockoutTier(attempt_threshold=0, lockout_seconds=0),
    LockoutTier(attempt_threshold=3, lockout_seconds=30),
    LockoutTier(attempt_threshold=5, lockout_seconds=300),  # 5 min
    LockoutTier(attempt_threshold=8, lockout_seconds=1800),  # 30 min
)


class LockoutPolicy:
    """
    Ordered, immutable tier table.

    The tier applied is the one with the greatest threshold <= failed attempts.
    Past the last tier every further failure re-applies the last tier's
    duration, so the lock keeps being extended without growing.
    """

    def __init__(self, tiers: Iterable[LockoutTier] = DEFAULT_LOCKOUT_TIERS):
        ordered = tuple(sorted(tiers, key=lambda t: t.attempt_threshold))
        if not ordered:
            raise ValueError("Lockout policy needs at least one tier")

        thresholds = [t.attempt_threshold for t in ordered]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("Lockout thresholds must be unique")

        # Durations must never shrink as attempts grow
        for previous, current in zip(ordered, ordered[1:]):
            if current.lockout_seconds < previous.lockout_seconds:
                raise ValueError("Lockout durations must be non-decreasing")

        self._tiers = ordered

    @classmethod
    def from_pairs(cls, pairs: Sequence[Sequence[int]]) -> "LockoutPolicy":
        """Build from [[threshold, seconds], ...] as stored in settings"""
        return cls(LockoutTier(attempt_threshold=t, lockout_seconds=s) for t, s in pairs)

    @property
    def tiers(self) -> Tuple[LockoutTier, ...]:
        return self._tiers

    def lockout_duration_for(self, failed_attempts: int) -> int:
        """Lockout in seconds after failed_attempts consecutive failures (0 = no lock)"""
        duration = 0
        for tier in self._tiers:
            if tier.attempt_threshold > failed_attempts:
                break
            duration = tier.lockout_seconds
        return duration

"""Voting-power calculator - time-weighted balance of a lock.

Key Concepts:
- Decay: power(t) = principal * (end - t) // (end - start)
  Full principal at lock creation, falling linearly to zero at expiry.
- Growth: power(t) = virtual_principal * (t - start) // (end - start)
  Zero at lock creation, rising linearly to virtual_principal at expiry.
  A pure re-lock re-bases virtual_principal by the growth already accrued.
- All arithmetic is integer with truncating division, so a sum of
  individual balances never exceeds the exact proportional total.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple


class VotingPolicy(str, Enum):
    DECAY = "decay"
    GROWTH = "growth"


@dataclass
class LockRecord:
    """One address's lock. A record with zero principal is absent."""
    principal: int = 0  # Net-of-fee deposited amount
    virtual_principal: int = 0  # Re-based principal (growth policy); equals principal under decay
    start_index: int = 0  # Time index at creation / last window reset
    end_index: int = 0  # Time index from which the lock is claimable

    @property
    def is_active(self) -> bool:
        return self.principal > 0

    @property
    def duration(self) -> int:
        return self.end_index - self.start_index


@dataclass(frozen=True)
class WindowPolicy:
    """Which ends of [start, end] carry voting power."""
    include_start: bool = True
    include_end: bool = False

    def contains(self, lock: LockRecord, t: int) -> bool:
        if t < lock.start_index or t > lock.end_index:
            return False
        if t == lock.start_index and not self.include_start:
            return False
        if t == lock.end_index and not self.include_end:
            return False
        return True


class VotingPowerCalculator:
    """Pure voting-power arithmetic for one policy and window convention."""

    def __init__(
        self,
        policy: VotingPolicy = VotingPolicy.DECAY,
        window: Optional[WindowPolicy] = None
    ):
        """
        Initialize calculator.

        Args:
            policy: Decay or growth curve
            window: Boundary inclusivity (defaults to [start, end))
        """
        self.policy = VotingPolicy(policy)
        self.window = window or WindowPolicy()

    def adjusted_balance(self, lock: Optional[LockRecord], at_time_index: int) -> int:
        """
        Voting power of `lock` at `at_time_index`.

        Returns:
            0 for an absent lock or a time index outside the window
        """
        if lock is None or not lock.is_active or lock.duration <= 0:
            return 0
        if not self.window.contains(lock, at_time_index):
            return 0

        if self.policy is VotingPolicy.DECAY:
            remaining = lock.end_index - at_time_index
            return lock.principal * remaining // lock.duration

        elapsed = at_time_index - lock.start_index
        return lock.virtual_principal * elapsed // lock.duration

    def accrued_growth(self, lock: Optional[LockRecord], at_time_index: int) -> int:
        """
        Growth earned so far: virtual_principal * elapsed // duration.

        Elapsed time is clamped to the lock window, so it ignores the
        boundary-inclusivity convention used for voting power.
        """
        if lock is None or not lock.is_active or lock.duration <= 0:
            return 0
        elapsed = min(max(at_time_index - lock.start_index, 0), lock.duration)
        return lock.virtual_principal * elapsed // lock.duration

    def total_adjusted_balance(self, locks: Iterable[LockRecord], at_time_index: int) -> int:
        """Sum of adjusted balances; the denominator for proportional payouts."""
        return sum(self.adjusted_balance(lock, at_time_index) for lock in locks)

    def curve(self, lock: LockRecord, time_indices: Iterable[int]) -> List[Tuple[int, int]]:
        """(time_index, voting power) pairs for plotting and tables."""
        return [(t, self.adjusted_balance(lock, t)) for t in time_indices]

    def upper_bound(self, lock: LockRecord) -> int:
        """Largest balance `lock` can ever report."""
        return max(lock.principal, lock.virtual_principal)

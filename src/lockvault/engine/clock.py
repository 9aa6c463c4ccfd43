"""Monotonic time-index sources.

Lock periods and grace periods are counted in time-index units (block
heights), never wall-clock seconds.
"""

from typing import Protocol


class TimeIndexSource(Protocol):
    """Anything that can report the current time index."""

    def now(self) -> int:
        ...


class ManualClock:
    """Time index advanced explicitly by the host (tests, simulation)."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"Time index cannot be negative: {start}")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, steps: int = 1) -> int:
        """Move forward by `steps` and return the new index."""
        if steps < 0:
            raise ValueError(f"Time index is monotonic; cannot advance by {steps}")
        self._now += steps
        return self._now

    def set(self, index: int) -> int:
        """Jump to `index`, which must not be in the past."""
        if index < self._now:
            raise ValueError(
                f"Time index is monotonic; cannot move from {self._now} back to {index}"
            )
        self._now = index
        return self._now

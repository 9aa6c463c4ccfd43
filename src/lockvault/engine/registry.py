"""Active-lock registry: bounded set of addresses holding a live lock."""

from typing import Dict, Iterator, List, Tuple

from .errors import CapacityExceeded, DuplicateMember


class ActiveLockRegistry:
    """Fixed-capacity set with swap-with-last removal.

    Order is stable only between mutations: removing a member moves the last
    member into its slot. Callers that need a stable ordering across calls
    must take a `members()` snapshot.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Registry capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._members: List[str] = []
        self._index: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, address: str) -> bool:
        return address in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._members))

    def size(self) -> int:
        return len(self._members)

    def is_full(self) -> bool:
        return len(self._members) >= self.capacity

    def member_at(self, index: int) -> str:
        if not 0 <= index < len(self._members):
            raise IndexError(f"Registry index {index} out of range (size {len(self._members)})")
        return self._members[index]

    def members(self) -> Tuple[str, ...]:
        """Ordered snapshot of current members."""
        return tuple(self._members)

    def insert(self, address: str) -> None:
        if address in self._index:
            raise DuplicateMember(f"{address} is already registered")
        if self.is_full():
            raise CapacityExceeded(
                f"Registry full ({self.capacity} active locks)",
                details={'capacity': self.capacity}
            )
        self._index[address] = len(self._members)
        self._members.append(address)

    def remove(self, address: str) -> bool:
        """Remove `address`; returns False (no-op) when absent."""
        slot = self._index.pop(address, None)
        if slot is None:
            return False
        last = self._members.pop()
        if slot < len(self._members):
            self._members[slot] = last
            self._index[last] = slot
        return True

"""
Time-windowed FIFO with lazy eviction.

Both the per-address request windows and the operator message log are
built on this: items go in at the tail with the time they were added and
fall off the head once they are older than max_age. Eviction happens on
read, and stops at the first fresh item because items arrive in time order.
"""

from collections import deque
from typing import Deque, Generic, Iterator, List, Tuple, TypeVar

T = TypeVar("T")


class ExpiringSequence(Generic[T]):
    """
    Ordered (time, item) pairs, oldest first.

    An item added at time t is stale at time now when now - t > max_age.
    """

    def __init__(self, max_age: float):
        if max_age <= 0:
            raise ValueError(f"max_age must be positive, got {max_age!r}")
        self.max_age = max_age
        self._entries: Deque[Tuple[float, T]] = deque()

    def append(self, item: T, now: float) -> None:
        self._entries.append((now, item))

    def evict(self, now: float, max_age: float = None) -> int:
        """Drop stale items from the head. Returns how many were dropped."""
        max_age = self.max_age if max_age is None else max_age
        entries = self._entries
        dropped = 0
        while entries and now - entries[0][0] > max_age:
            entries.popleft()
            dropped += 1
        return dropped

    def size_at(self, now: float) -> int:
        """Number of fresh items at time now (stale ones are dropped first)."""
        self.evict(now)
        return len(self._entries)

    def items_at(self, now: float, max_age: float = None) -> List[T]:
        """Fresh items, oldest first."""
        max_age = self.max_age if max_age is None else max_age
        self.evict(now)
        return [item for t, item in self._entries if now - t <= max_age]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        # Raw length, without eviction.
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[float, T]]:
        return iter(self._entries)

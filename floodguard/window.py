"""
Per-address sliding window of request times.
"""

from typing import Dict, Iterator, Optional

from .expiring import ExpiringSequence


class SlidingWindowCounter:
    """
    Counts requests per address over the last `period` seconds.

    Windows are created on the first record() for an address and removed
    by clear(), or once they have emptied out. Empty windows are dropped
    when count_at() finds them, and by a sweep over all windows that
    record() runs at most once per period. Times must be non-decreasing.
    """

    def __init__(self, period: float):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period!r}")
        self.period = period
        self._windows: Dict[str, ExpiringSequence[float]] = {}
        self._last_sweep: Optional[float] = None

    def record(self, address: str, now: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
        elif now - self._last_sweep >= self.period:
            self.prune(now)
        window = self._windows.get(address)
        if window is None:
            window = self._windows[address] = ExpiringSequence(self.period)
        window.append(now, now)

    def count_at(self, address: str, now: float) -> int:
        """Requests from address within the period ending at now."""
        window = self._windows.get(address)
        if window is None:
            return 0
        n = window.size_at(now)
        if n == 0:
            del self._windows[address]
        return n

    def prune(self, now: float) -> int:
        """Drop every window with nothing left in it. Returns how many went."""
        stale = [a for a, w in self._windows.items() if w.size_at(now) == 0]
        for address in stale:
            del self._windows[address]
        self._last_sweep = now
        return len(stale)

    def clear(self, address: str) -> None:
        self._windows.pop(address, None)

    def addresses(self) -> Iterator[str]:
        return iter(list(self._windows))

    def __contains__(self, address: str) -> bool:
        return address in self._windows

    def __len__(self) -> int:
        return len(self._windows)

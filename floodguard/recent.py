"""
Recent status messages shown to the operator on the status screen.
"""

from itertools import count
from typing import List, Optional, Tuple

from .expiring import ExpiringSequence


class RecentEventLog:
    """
    Messages kept for `retention` seconds after they were appended.

    Each message gets an increasing sequence number so callers can tell
    insertion order apart from display order (newest first).
    """

    def __init__(self, retention: float):
        self._messages: ExpiringSequence[Tuple[str, int]] = ExpiringSequence(retention)
        self._seq = count()

    @property
    def retention(self) -> float:
        return self._messages.max_age

    def append(self, message: str, now: float) -> None:
        self._messages.append((message, next(self._seq)), now)

    def recent_messages(
        self, now: float, max_age: Optional[float] = None, limit: Optional[int] = None
    ) -> List[Tuple[str, int]]:
        """(message, insertion order) pairs no older than max_age, newest first."""
        items = self._messages.items_at(now, max_age)
        items.reverse()
        if limit is not None:
            items = items[:limit]
        return items

    def __len__(self) -> int:
        return len(self._messages)

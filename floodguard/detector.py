"""
Flood detection logic.

We count qualifying requests per source address over a sliding window.
When an address makes more than `limit` requests within `period` seconds
it is blocked: we emit a BlockEvent, stop tracking it and never look at it
again for the rest of the run.

Per address:

    UNSEEN -> TRACKED -> BLOCKED

A tracked address whose window empties out is forgotten (back to UNSEEN).
Whitelisted addresses stay UNSEEN forever. The detector does no I/O: the
caller supplies the time, reacts to the returned BlockEvent and decides
what to do with warnings.
"""

import enum
from dataclasses import dataclass, field
from typing import Callable, Optional, Set

from .line_filter import LineFilter
from .log_parser import ParseError, extract_address
from .whitelist import Whitelist
from .window import SlidingWindowCounter

WarningCallback = Callable[[str, str], None]


class AddressState(enum.Enum):
    UNSEEN = "unseen"
    TRACKED = "tracked"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class BlockEvent:
    """An address went over the limit and should be denied further access."""

    address: str
    count: int  # window size that tripped the limit
    at: float


@dataclass
class FloodState:
    """
    Everything the detector knows during a run.

    `blocked` only grows. The whitelist is fixed when the state is built.
    """

    counter: SlidingWindowCounter
    whitelist: Whitelist = field(default_factory=Whitelist)
    blocked: Set[str] = field(default_factory=set)
    lines_ignored: int = 0
    lines_skipped: int = 0


class FloodDetector:
    def __init__(
        self,
        limit: int,
        period: float,
        line_filter: Optional[LineFilter] = None,
        whitelist: Optional[Whitelist] = None,
        on_warning: Optional[WarningCallback] = None,
    ):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit!r}")
        self.limit = limit
        self.line_filter = line_filter or LineFilter()
        self.state = FloodState(
            counter=SlidingWindowCounter(period),
            whitelist=whitelist if whitelist is not None else Whitelist(),
        )
        self.on_warning = on_warning

    @property
    def period(self) -> float:
        return self.state.counter.period

    def ingest(self, line: str, now: float) -> Optional[BlockEvent]:
        """
        Feed one log line observed at time now.

        Returns a BlockEvent the moment the line's address goes over the
        limit, None otherwise. Unparsable lines are reported through
        on_warning and skipped.
        """
        state = self.state
        if not self.line_filter.accepts(line):
            state.lines_ignored += 1
            return None

        try:
            address = extract_address(line)
        except ParseError as e:
            state.lines_skipped += 1
            if self.on_warning is not None:
                self.on_warning(str(e), line)
            return None

        if address in state.blocked or address in state.whitelist:
            return None

        counter = state.counter
        counter.record(address, now)
        count = counter.count_at(address, now)
        if count > self.limit:
            state.blocked.add(address)
            counter.clear(address)
            return BlockEvent(address=address, count=count, at=now)
        return None

    def state_of(self, address: str) -> AddressState:
        if address in self.state.blocked:
            return AddressState.BLOCKED
        if address in self.state.counter:
            return AddressState.TRACKED
        return AddressState.UNSEEN

    def count_at(self, address: str, now: float) -> int:
        return self.state.counter.count_at(address, now)

    @property
    def blocked(self) -> Set[str]:
        return set(self.state.blocked)

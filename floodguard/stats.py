"""
Status snapshot of a run, assembled on demand for the status screen.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .detector import FloodDetector
from .recent import RecentEventLog

CLEAR_SCREEN = "\x1b[2J\x1b[H"


@dataclass(frozen=True)
class StatsSnapshot:
    blocked_count: int
    lines_seen: int
    elapsed: float
    top_addresses: List[Tuple[str, int]] = field(default_factory=list)
    recent_messages: List[str] = field(default_factory=list)


def top_addresses(detector: FloodDetector, now: float, top_n: int) -> List[Tuple[str, int]]:
    """
    Currently tracked addresses by descending window size.

    Ties are ordered by address so the output is stable. Addresses whose
    window has emptied out are left out.
    """
    ranked = []
    for address in detector.state.counter.addresses():
        n = detector.count_at(address, now)
        if n > 0:
            ranked.append((address, n))
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked[:top_n]


def take_snapshot(
    detector: FloodDetector,
    lines_seen: int,
    started_at: float,
    now: float,
    top_n: int = 10,
    recent_log: Optional[RecentEventLog] = None,
    message_count: int = 10,
) -> StatsSnapshot:
    messages = []
    if recent_log is not None:
        messages = [m for m, _ in recent_log.recent_messages(now, limit=message_count)]
    return StatsSnapshot(
        blocked_count=len(detector.state.blocked),
        lines_seen=lines_seen,
        elapsed=max(0.0, now - started_at),
        top_addresses=top_addresses(detector, now, top_n),
        recent_messages=messages,
    )


def format_elapsed(seconds: float) -> str:
    """e.g. 3725 -> '1:02:05'"""
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def render(snapshot: StatsSnapshot, clear: bool = True) -> str:
    """Plain-text status screen for snapshot."""
    lines = [
        f"Blocked: {snapshot.blocked_count}   "
        f"Lines: {snapshot.lines_seen}   "
        f"Running: {format_elapsed(snapshot.elapsed)}",
        "",
        "Top addresses",
    ]
    if snapshot.top_addresses:
        for address, n in snapshot.top_addresses:
            lines.append(f"  {address:<15} {n:>7}")
    else:
        lines.append("  (none)")
    lines += ["", "Recent messages"]
    if snapshot.recent_messages:
        lines += [f"  {m}" for m in snapshot.recent_messages]
    else:
        lines.append("  (none)")
    text = "\n".join(lines) + "\n"
    return CLEAR_SCREEN + text if clear else text

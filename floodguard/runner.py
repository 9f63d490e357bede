"""
Driver loop: read lines, detect floods, respond, show status.

Responding to a block is multi-stage, in this order:
  1. Log + alert (always)
  2. Firewall block (logged only in DRY-RUN)
  3. Record in the blacklist file and the recent-message log
A firewall failure propagates and ends the run.
"""

import sys
import time
from pathlib import Path
from typing import Callable, Optional, TextIO

from . import firewall
from . import logger
from .config import Settings
from .detector import BlockEvent, FloodDetector
from .line_filter import LineFilter
from .recent import RecentEventLog
from .stats import render, take_snapshot
from .whitelist import Whitelist


def append_to_blacklist(ip: str, path: Path) -> None:
    """Append a blocked IP to the blacklist file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(ip.strip() + "\n")


class Runner:
    def __init__(
        self,
        settings: Settings,
        whitelist: Optional[Whitelist] = None,
        clock: Callable[[], float] = time.time,
        out: Optional[TextIO] = None,
        block: Callable[..., None] = firewall.block_ip,
    ):
        self.settings = settings
        self.clock = clock
        self.out = out if out is not None else sys.stdout
        self.block = block
        self.detector = FloodDetector(
            limit=settings.limit,
            period=settings.period,
            line_filter=LineFilter(settings.has, settings.has_not, settings.regex, settings.not_regex),
            whitelist=whitelist,
            on_warning=self._on_warning,
        )
        self.recent = RecentEventLog(settings.recent_retention)
        self.lines_seen = 0
        self.started_at = clock()
        self._next_status = self.started_at
        self._now = self.started_at

    def _on_warning(self, message: str, line: str) -> None:
        logger.log_warn("Skipping unrecognized log line", error=message)
        self.recent.append(f"{_clock_label(self._now)} skipped unrecognized line", self._now)

    def handle_line(self, line: str, now: Optional[float] = None) -> Optional[BlockEvent]:
        """Feed one line to the detector and respond if it trips a block."""
        now = self.clock() if now is None else now
        self._now = now
        self.lines_seen += 1
        event = self.detector.ingest(line, now)
        if event is not None:
            self.respond(event)
        return event

    def respond(self, event: BlockEvent) -> None:
        settings = self.settings

        # Stage 1: log and write alert
        alert = {
            "ip": event.address,
            "timestamp": event.at,
            "request_count": event.count,
            "reason": (
                f"IP exceeded threshold: {event.count} requests "
                f"within {settings.period}s (limit={settings.limit})"
            ),
            "action": "block_simulated" if settings.dry_run else "block_applied",
        }
        logger.log_warn("Flood detected", **alert)
        logger.append_alert(alert, Path(settings.alerts_file))

        # Stage 2: firewall block (or dry-run log)
        self.block(event.address, dry_run=settings.dry_run)

        # Stage 3: remember it
        append_to_blacklist(event.address, Path(settings.blacklist_file))
        prefix = "[DRY-RUN] would block" if settings.dry_run else "blocked"
        self.recent.append(
            f"{_clock_label(event.at)} {prefix} {event.address} ({event.count} requests)",
            event.at,
        )

    def snapshot(self, now: Optional[float] = None):
        now = self.clock() if now is None else now
        return take_snapshot(
            self.detector,
            lines_seen=self.lines_seen,
            started_at=self.started_at,
            now=now,
            top_n=self.settings.top,
            recent_log=self.recent,
            message_count=self.settings.recent_messages,
        )

    def maybe_render(self, now: Optional[float] = None) -> bool:
        """Redraw the status screen if its interval has passed."""
        if not self.settings.status:
            return False
        now = self.clock() if now is None else now
        if now < self._next_status:
            return False
        self._next_status = now + self.settings.status_interval
        self.out.write(render(self.snapshot(now)))
        self.out.flush()
        return True

    def run(self, source, idle_sleep: float = 0.25) -> int:
        """
        Consume source until it is finished or interrupted.

        Returns the number of lines seen.
        """
        logger.log_info(
            "Flood detector started",
            limit=self.settings.limit,
            period=self.settings.period,
            dry_run=self.settings.dry_run,
        )
        try:
            while True:
                line = source.next_line()
                if line is None:
                    if source.finished:
                        break
                    self.maybe_render()
                    time.sleep(idle_sleep)
                    continue
                self.handle_line(line)
                self.maybe_render()
        except KeyboardInterrupt:
            logger.log_info("Interrupted; stopping")

        state = self.detector.state
        logger.log_info(
            "Detection run complete",
            lines_seen=self.lines_seen,
            lines_ignored=state.lines_ignored,
            lines_skipped=state.lines_skipped,
            blocked_count=len(state.blocked),
            dry_run=self.settings.dry_run,
        )
        return self.lines_seen


def _clock_label(ts: float) -> str:
    return time.strftime("%H:%M:%S", time.localtime(ts))

"""
Line sources for the detector.

- StdinSource: lines piped in on standard input (e.g. `tail -F access.log |`).
- LogMultiplexer: follows the newest file in a log directory matching one
  or more glob patterns and switches over when log rotation creates a
  newer one.

Both expose next_line(), returning one line (without the trailing newline)
or None when nothing is available right now. `finished` turns True once a
source will never produce another line.
"""

import codecs
import os
import selectors
import sys
import time
from collections import deque
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Optional, TextIO

from . import logger


class StdinSource:
    """
    Lines from a text stream (stdin by default); None and finished=True at EOF.

    With a timeout, and a stream backed by a pipe or terminal, next_line()
    waits at most `timeout` seconds and returns None when nothing arrived,
    so the caller can keep its status screen fresh. Otherwise it blocks on
    readline().
    """

    def __init__(self, stream: Optional[TextIO] = None, timeout: Optional[float] = None):
        self.stream = stream if stream is not None else sys.stdin
        self.timeout = timeout
        self.finished = False
        self._selector = None
        self._lines: Deque[str] = deque()
        self._buffer = ""
        if timeout is not None:
            self._watch()

    def _watch(self) -> None:
        try:
            fd = self.stream.fileno()
        except (AttributeError, OSError, ValueError):
            return  # in-memory stream
        selector = selectors.DefaultSelector()
        try:
            selector.register(fd, selectors.EVENT_READ)
        except (OSError, ValueError):
            # Regular files cannot be polled; they never block either.
            selector.close()
            return
        self._fd = fd
        self._selector = selector
        encoding = getattr(self.stream, "encoding", None) or "utf-8"
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def next_line(self) -> Optional[str]:
        if self._selector is None:
            return self._readline()
        if self._lines:
            return self._lines.popleft()
        if self.finished or not self._selector.select(self.timeout):
            return None

        data = os.read(self._fd, 65536)
        if not data:
            self.finished = True
            rest = self._buffer + self._decoder.decode(b"", final=True)
            self._buffer = ""
            return rest.rstrip("\r\n") or None
        self._buffer += self._decoder.decode(data)
        *complete, self._buffer = self._buffer.split("\n")
        self._lines.extend(line.rstrip("\r") for line in complete)
        return self._lines.popleft() if self._lines else None

    def _readline(self) -> Optional[str]:
        if self.finished:
            return None
        line = self.stream.readline()
        if not line:
            self.finished = True
            return None
        return line.rstrip("\r\n")

    def close(self) -> None:
        # The stream itself belongs to the caller.
        if self._selector is not None:
            self._selector.close()
            self._selector = None


class LogMultiplexer:
    """
    Tail whichever matching file in `directory` is currently newest.

    Newest means latest modification time, then greatest name. The first
    file is opened at its end (we only care about live traffic). A file
    that shows up later is read from the start, after the rest of the old
    file has been drained. The directory is rescanned at most every
    `rotation_check` seconds.
    """

    finished = False

    def __init__(
        self,
        directory: Path,
        patterns: Iterable[str],
        rotation_check: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = Path(directory)
        self.patterns: List[str] = list(patterns)
        self.rotation_check = rotation_check
        self.clock = clock
        self.path: Optional[Path] = None
        self._handle: Optional[TextIO] = None
        self._partial = ""
        self._pending: Optional[Path] = None
        self._last_check = None

    def newest_file(self) -> Optional[Path]:
        candidates = set()
        for pattern in self.patterns:
            for p in self.directory.glob(pattern):
                if p.is_file():
                    candidates.add(p)
        best = None
        best_key = None
        for p in candidates:
            try:
                key = (p.stat().st_mtime, p.name)
            except OSError:
                continue  # rotated away between glob and stat
            if best_key is None or key > best_key:
                best, best_key = p, key
        return best

    def _open(self, path: Path, at_end: bool) -> None:
        self.close()
        self._handle = open(path, "r", encoding="utf-8", errors="replace")
        if at_end:
            self._handle.seek(0, os.SEEK_END)
        self.path = path
        self._partial = ""
        logger.log_info("Following log file", path=str(path), from_end=at_end)

    def _check_rotation(self) -> None:
        now = self.clock()
        if self._last_check is not None and now - self._last_check < self.rotation_check:
            return
        self._last_check = now
        newest = self.newest_file()
        if newest is None:
            return
        if self._handle is None:
            self._open(newest, at_end=True)
        elif newest != self.path:
            self._pending = newest

    def _handle_truncation(self) -> None:
        # copytruncate-style rotation shrinks the file under us.
        try:
            size = os.fstat(self._handle.fileno()).st_size
        except OSError:
            return
        if size < self._handle.tell():
            logger.log_info("Log file truncated; reading from start", path=str(self.path))
            self._handle.seek(0)
            self._partial = ""

    def next_line(self) -> Optional[str]:
        self._check_rotation()
        if self._handle is None:
            return None

        chunk = self._handle.readline()
        if chunk:
            if not chunk.endswith("\n"):
                # Writer is mid-line; hold on to it until the rest arrives.
                self._partial += chunk
                return None
            line = self._partial + chunk
            self._partial = ""
            return line.rstrip("\r\n")

        if self._pending is not None:
            pending, self._pending = self._pending, None
            # The old file is done; a trailing fragment is its last line.
            leftover = self._partial
            self._open(pending, at_end=False)
            if leftover:
                return leftover.rstrip("\r\n")
            return self.next_line()

        self._handle_truncation()
        return None

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

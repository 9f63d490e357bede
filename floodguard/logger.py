"""
Structured JSON logging for the flood detector.

Each log line is a single JSON object so the output can be shipped to a
SIEM or grepped with jq. Block alerts are also written to their own JSON
Lines file (see append_alert).
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO

# stdout by default. The status screen takes over stdout, so the runner
# points logging at a file (or stderr) while it is shown.
LOG_STREAM: TextIO = sys.stdout

# File opened by set_log_file; we close it when the stream is replaced.
_LOG_FILE: Optional[TextIO] = None


def close_log_file() -> None:
    """Close the file opened by set_log_file, if any, and fall back to stdout."""
    global _LOG_FILE, LOG_STREAM
    if _LOG_FILE is not None:
        if LOG_STREAM is _LOG_FILE:
            LOG_STREAM = sys.stdout
        _LOG_FILE.close()
        _LOG_FILE = None


def set_stream(stream: TextIO) -> None:
    """Send subsequent log lines to stream."""
    global LOG_STREAM
    if stream is not _LOG_FILE:
        close_log_file()
    LOG_STREAM = stream


def set_log_file(path: Optional[Path]) -> None:
    """Append subsequent log lines to path (None restores stdout)."""
    global _LOG_FILE
    if path is None:
        set_stream(sys.stdout)
        return
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = open(path, "a", encoding="utf-8")
    close_log_file()
    _LOG_FILE = handle
    set_stream(handle)


def _timestamp_iso() -> str:
    """Current UTC time in ISO format for log entries."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def log_event(level: str, message: str, **kwargs) -> None:
    """
    Write a single log event as one line of JSON.

    Args:
        level: INFO, WARN, ERROR, etc.
        message: Human-readable description.
        **kwargs: Additional key-value pairs (e.g. ip, count, action).
    """
    event = {
        "timestamp": _timestamp_iso(),
        "level": level,
        "message": message,
        **kwargs,
    }
    line = json.dumps(event, default=str) + "\n"
    LOG_STREAM.write(line)
    LOG_STREAM.flush()


def log_info(message: str, **kwargs) -> None:
    log_event("INFO", message, **kwargs)


def log_warn(message: str, **kwargs) -> None:
    log_event("WARN", message, **kwargs)


def log_error(message: str, **kwargs) -> None:
    log_event("ERROR", message, **kwargs)


def append_alert(alert: dict, alerts_file: Path) -> None:
    """
    Append one alert to the alerts file, one JSON object per line.

    Append mode, so alerts from earlier runs are kept.
    """
    alerts_file = Path(alerts_file)
    alerts_file.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(alert, default=str) + "\n"
    with open(alerts_file, "a", encoding="utf-8") as f:
        f.write(line)

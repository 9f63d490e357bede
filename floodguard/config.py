"""
Central configuration for the flood detector.

Defaults live here as module-level constants. At startup they are gathered
into a Settings object, overlaid by an optional JSON config file and then by
command-line flags, and validated before anything runs.
"""

import json
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

# ---------------------------------------------------------------------------
# DETECTION THRESHOLDS
# ---------------------------------------------------------------------------
# How many requests within the period an address may make. One more and it
# is blocked (strictly greater than).
REQUEST_LIMIT = 100

# Width of the sliding window, in seconds.
PERIOD_SECONDS = 60

# ---------------------------------------------------------------------------
# LINE FILTERS
# ---------------------------------------------------------------------------
# Lines must contain every HAS substring and none of the HAS_NOT substrings.
# REGEX / NOT_REGEX work the same way with regular expressions.
HAS: List[str] = []
HAS_NOT: List[str] = []
REGEX: List[str] = []
NOT_REGEX: List[str] = []

# ---------------------------------------------------------------------------
# INPUT
# ---------------------------------------------------------------------------
# When LOG_DIR is set we follow the newest file in it matching LOG_GLOBS,
# otherwise lines are read from stdin.
LOG_DIR: Optional[str] = None
LOG_GLOBS = ["access.log*"]

# How often (seconds) the multiplexer looks for a newer log file, and how
# long it sleeps when there is nothing to read.
ROTATION_CHECK_SECONDS = 5.0
IDLE_SLEEP_SECONDS = 0.25

# ---------------------------------------------------------------------------
# PATHS
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "floodguard.json"
WHITELIST_FILE = CONFIG_DIR / "whitelist.txt"
BLACKLIST_FILE = CONFIG_DIR / "blacklist.txt"

OUTPUT_DIR = PROJECT_ROOT / "output"
ALERTS_FILE = OUTPUT_DIR / "alerts.json"

# ---------------------------------------------------------------------------
# RESPONSE
# ---------------------------------------------------------------------------
# If True, we NEVER run real firewall commands. Only log what we would do.
DRY_RUN = True

# Inbound TCP ports closed to a blocked address.
BLOCKED_PORTS = [80, 443]

# ---------------------------------------------------------------------------
# STATUS SCREEN
# ---------------------------------------------------------------------------
STATUS_ENABLED = True
STATUS_INTERVAL_SECONDS = 2.0
TOP_ADDRESSES = 10
RECENT_MESSAGES = 10
RECENT_RETENTION_SECONDS = 300


class ConfigError(ValueError):
    """Configuration that the detector refuses to run with."""


@dataclass
class Settings:
    """Effective configuration for one run."""

    limit: int = REQUEST_LIMIT
    period: int = PERIOD_SECONDS
    has: List[str] = field(default_factory=lambda: list(HAS))
    has_not: List[str] = field(default_factory=lambda: list(HAS_NOT))
    regex: List[str] = field(default_factory=lambda: list(REGEX))
    not_regex: List[str] = field(default_factory=lambda: list(NOT_REGEX))
    log_dir: Optional[str] = LOG_DIR
    log_globs: List[str] = field(default_factory=lambda: list(LOG_GLOBS))
    whitelist_file: str = str(WHITELIST_FILE)
    blacklist_file: str = str(BLACKLIST_FILE)
    alerts_file: str = str(ALERTS_FILE)
    log_file: Optional[str] = None
    dry_run: bool = DRY_RUN
    status: bool = STATUS_ENABLED
    status_interval: float = STATUS_INTERVAL_SECONDS
    top: int = TOP_ADDRESSES
    recent_messages: int = RECENT_MESSAGES
    recent_retention: int = RECENT_RETENTION_SECONDS

    def validate(self) -> None:
        """
        Refuse to run on a bad threshold, period, log directory or regex.

        Raises ConfigError with a message naming the offending setting.
        """
        if not _is_positive_int(self.limit):
            raise ConfigError(f"limit must be a positive integer, got {self.limit!r}")
        if not _is_positive_int(self.period):
            raise ConfigError(f"period must be a positive integer, got {self.period!r}")
        if not _is_positive_int(self.top):
            raise ConfigError(f"top must be a positive integer, got {self.top!r}")
        if self.log_dir is not None:
            path = Path(self.log_dir)
            if not path.is_dir():
                raise ConfigError(f"log directory not found: {self.log_dir}")
            if not os.access(path, os.R_OK | os.X_OK):
                raise ConfigError(f"log directory not readable: {self.log_dir}")
            if not self.log_globs:
                raise ConfigError("log_globs must name at least one pattern")
        for pattern in list(self.regex) + list(self.not_regex):
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"invalid regular expression {pattern!r}: {e}") from e


def _is_positive_int(value) -> bool:
    # bool is an int subclass; True is not a threshold.
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def load_settings(path: Optional[Path] = None, **overrides) -> Settings:
    """
    Build Settings from defaults, then the JSON config file, then overrides.

    A missing file is fine (defaults apply) unless it was asked for
    explicitly. Unknown keys are rejected so typos do not go unnoticed.
    Overrides whose value is None are ignored.
    """
    explicit = path is not None
    path = Path(path) if explicit else CONFIG_FILE
    values = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                values = json.load(f)
        except (ValueError, OSError) as e:
            raise ConfigError(f"could not read config file {path}: {e}") from e
        if not isinstance(values, dict):
            raise ConfigError(f"config file {path} must hold a JSON object")
    elif explicit:
        raise ConfigError(f"config file not found: {path}")

    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown setting(s): {', '.join(unknown)}")
    return Settings(**values)

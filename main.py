"""
HTTP Flood Detector - Entry point.

Orchestrates:
1. Load configuration (defaults, JSON config file, command-line flags)
2. Read access log lines from stdin or the newest rotating log file
3. Detect floods: addresses exceeding the request limit within the period
4. Respond:
   - Log + alert (always)
   - Firewall block of ports 80/443 (when not in DRY-RUN)

Whitelisted addresses are never tracked or blocked. Alerts are written to
output/alerts.json.
"""

import argparse
import sys
from pathlib import Path

# Add project root so we can run: python main.py
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from floodguard import config
from floodguard import logger
from floodguard import whitelist
from floodguard.config import ConfigError
from floodguard.firewall import FirewallError
from floodguard.runner import Runner
from floodguard.tailer import LogMultiplexer, StdinSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="floodguard",
        description="Block addresses that flood a web server, based on its access log.",
    )
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument("--limit", type=int, help="max requests per period before blocking")
    parser.add_argument("--period", type=int, help="sliding window width in seconds")
    parser.add_argument("--whitelist", dest="whitelist_file", help="file of addresses/CIDRs never to block")
    parser.add_argument("--has", action="append", help="only count lines containing this (repeatable)")
    parser.add_argument("--has-not", action="append", help="ignore lines containing this (repeatable)")
    parser.add_argument("--regex", action="append", help="only count lines matching this (repeatable)")
    parser.add_argument("--not-regex", action="append", help="ignore lines matching this (repeatable)")
    parser.add_argument("--log-dir", help="follow the newest matching log file in this directory")
    parser.add_argument("--log-glob", dest="log_globs", action="append",
                        help="log file pattern inside --log-dir (repeatable, default access.log*)")
    parser.add_argument("--log-file", help="write our own JSON log here instead of stdout")
    parser.add_argument("--top", type=int, help="addresses shown on the status screen")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                      help="only log what would be blocked (default)")
    mode.add_argument("--enforce", dest="dry_run", action="store_false",
                      help="really block addresses (needs root)")
    parser.add_argument("--no-status", dest="status", action="store_false", default=None,
                        help="do not draw the status screen")
    return parser


def main(argv=None) -> int:
    args = vars(build_parser().parse_args(argv))
    config_path = args.pop("config")

    try:
        settings = config.load_settings(config_path, **args)
        settings.validate()
    except ConfigError as e:
        logger.log_error("Invalid configuration", error=str(e))
        return 2

    # The status screen owns stdout.
    if settings.log_file:
        logger.set_log_file(Path(settings.log_file))
    elif settings.status:
        logger.set_stream(sys.stderr)

    try:
        return _run(settings)
    finally:
        logger.close_log_file()


def _run(settings: config.Settings) -> int:
    trusted = whitelist.load_whitelist(Path(settings.whitelist_file))
    try:
        runner = Runner(settings, whitelist=trusted)
    except ConfigError as e:
        logger.log_error("Invalid configuration", error=str(e))
        return 2

    idle_sleep = config.IDLE_SLEEP_SECONDS
    if settings.log_dir:
        source = LogMultiplexer(
            Path(settings.log_dir),
            settings.log_globs,
            rotation_check=config.ROTATION_CHECK_SECONDS,
        )
    else:
        # next_line() already waits up to the timeout.
        source = StdinSource(timeout=idle_sleep)
        idle_sleep = 0

    try:
        runner.run(source, idle_sleep=idle_sleep)
    except FirewallError as e:
        logger.log_error("Firewall action failed; stopping", ip=e.ip, error=str(e))
        return 1
    finally:
        source.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

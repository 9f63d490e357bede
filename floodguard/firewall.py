"""
Firewall response: deny web traffic from flooding addresses via iptables or ufw.

Isolated here so that:
- DRY-RUN mode (default) never touches the firewall.
- Every command we run is in one place for review.

A failed block is fatal for the run: carrying on would leave the detector
believing an address is blocked while its traffic still gets through.
"""

import shutil
import subprocess
import sys
from typing import List, Optional, Sequence

from . import config
from . import logger


class FirewallError(RuntimeError):
    """The firewall rule for an address could not be installed."""

    def __init__(self, ip: str, reason: str):
        self.ip = ip
        super().__init__(f"could not block {ip}: {reason}")


def _is_linux() -> bool:
    """True if we are on Linux (where iptables/ufw exist)."""
    return sys.platform.startswith("linux")


def _ports_arg(ports: Sequence[int]) -> str:
    return ",".join(str(p) for p in ports)


def iptables_command(ip: str, ports: Sequence[int] = None) -> List[str]:
    """Insert at head: drop inbound TCP from ip to the web ports."""
    ports = ports or config.BLOCKED_PORTS
    return [
        "iptables", "-I", "INPUT", "1", "-s", ip,
        "-p", "tcp", "-m", "multiport", "--dports", _ports_arg(ports),
        "-j", "DROP",
    ]


def ufw_command(ip: str, ports: Sequence[int] = None) -> List[str]:
    ports = ports or config.BLOCKED_PORTS
    return ["ufw", "deny", "proto", "tcp", "from", ip, "to", "any", "port", _ports_arg(ports)]


def _run(command: List[str], ip: str) -> None:
    try:
        subprocess.run(command, check=True, capture_output=True, timeout=10)
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.log_error(f"{command[0]} block failed", ip=ip, error=str(e))
        raise FirewallError(ip, str(e)) from e


def choose_command(ip: str) -> List[str]:
    """iptables if installed, else ufw. Raises FirewallError if neither is."""
    if not _is_linux():
        raise FirewallError(ip, "no firewall support on this platform")
    if shutil.which("iptables"):
        return iptables_command(ip)
    if shutil.which("ufw"):
        return ufw_command(ip)
    raise FirewallError(ip, "neither iptables nor ufw found")


def block_ip(ip: str, dry_run: Optional[bool] = None) -> None:
    """
    Block an IP: use iptables if available, else ufw.

    If dry_run is True (default from config), we only LOG what we would do
    and do not run any firewall command.

    Raises FirewallError if the rule could not be installed.
    """
    dry_run = dry_run if dry_run is not None else config.DRY_RUN
    if dry_run:
        logger.log_info(
            "[DRY-RUN] Would block IP (firewall not modified)",
            ip=ip,
            command=" ".join(iptables_command(ip)),
            action="block_simulated",
        )
        return

    command = choose_command(ip)
    _run(command, ip)
    logger.log_info("Blocked IP", ip=ip, command=" ".join(command), action="block_applied")

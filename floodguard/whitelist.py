"""
Whitelist: trusted addresses that must NEVER be tracked or blocked.

Always whitelist your own admin address, monitoring probes and load
balancers, or the detector may lock you out of your own server.
"""

import ipaddress
from pathlib import Path
from typing import Iterable, List, Set

from . import logger


class Whitelist:
    """
    Exact addresses plus IPv4 networks in CIDR notation.

    Entries that are not valid networks are kept as plain text and only
    match exactly.
    """

    def __init__(self, entries: Iterable[str] = ()):
        self.addresses: Set[str] = set()
        self.networks: List[ipaddress.IPv4Network] = []
        for entry in entries:
            entry = entry.strip()
            if not entry:
                continue
            if "/" in entry:
                try:
                    self.networks.append(ipaddress.IPv4Network(entry, strict=False))
                    continue
                except ValueError:
                    logger.log_warn("Whitelist entry is not an IPv4 network; matching as text", entry=entry)
            self.addresses.add(entry)

    def __contains__(self, address: str) -> bool:
        if address in self.addresses:
            return True
        if not self.networks:
            return False
        try:
            ip = ipaddress.IPv4Address(address)
        except ValueError:
            return False
        return any(ip in net for net in self.networks)

    def __len__(self) -> int:
        return len(self.addresses) + len(self.networks)

    def __bool__(self) -> bool:
        return len(self) > 0


def load_whitelist(path: Path) -> Whitelist:
    """
    Load whitelist from file: one address or CIDR per line.

    Empty lines and # comments are ignored. A missing or empty file gives an
    empty whitelist and a startup warning.
    """
    path = Path(path)
    entries = []
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.split("#", 1)[0].strip()
                if line:
                    entries.append(line)
    whitelist = Whitelist(entries)
    if not whitelist:
        logger.log_warn(
            "No whitelist configured; you risk blocking yourself",
            path=str(path),
        )
    return whitelist

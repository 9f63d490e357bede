"""
Access log parser: pull the source address out of a log line.

Web server access logs (common/combined format and most variants) start
with the client address:

    203.0.113.7 - - [30/Jan/2024:10:15:23 +0000] "GET /index.php HTTP/1.1" 200 512

We only need that leading token. Octets are not range checked: a line like
"999.1.1.1 GET /" still yields "999.1.1.1".
"""

import re

# Four groups of 1-3 digits at the very start, followed by whitespace.
LEADING_ADDRESS = re.compile(r"^(?P<ip>\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})\s")


class ParseError(ValueError):
    """A log line the detector cannot attribute to an address."""


class UnrecognizedFormat(ParseError):
    """The line does not start with a dotted-quad address."""

    def __init__(self, line: str):
        self.line = line
        super().__init__(f"unrecognized log line format: {line[:80]!r}")


def extract_address(line: str) -> str:
    """
    Return the leading dotted-quad address of line.

    Raises UnrecognizedFormat for blank lines and anything else that does
    not start with an address followed by whitespace.
    """
    match = LEADING_ADDRESS.match(line)
    if match is None:
        raise UnrecognizedFormat(line)
    return match.group("ip")

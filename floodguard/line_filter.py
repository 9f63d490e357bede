"""
Include/exclude rules applied to raw log lines before anything else.

A line passes when it contains every required substring, none of the
forbidden ones, matches every required regex and none of the forbidden
regexes. Empty lists impose no constraint.
"""

import re
from typing import Iterable, List, Sequence

from .config import ConfigError


def accepts(
    line: str,
    has: Sequence[str] = (),
    has_not: Sequence[str] = (),
    matches: Sequence[re.Pattern] = (),
    not_matches: Sequence[re.Pattern] = (),
) -> bool:
    """True if line satisfies all four rule lists."""
    for needle in has:
        if needle not in line:
            return False
    for needle in has_not:
        if needle in line:
            return False
    for pattern in matches:
        if not pattern.search(line):
            return False
    for pattern in not_matches:
        if pattern.search(line):
            return False
    return True


def _compile_all(patterns: Iterable[str]) -> List[re.Pattern]:
    compiled = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error as e:
            raise ConfigError(f"invalid regular expression {p!r}: {e}") from e
    return compiled


class LineFilter:
    """
    Configured filter. Regexes are compiled once here, not per line.
    """

    def __init__(
        self,
        has: Iterable[str] = (),
        has_not: Iterable[str] = (),
        regex: Iterable[str] = (),
        not_regex: Iterable[str] = (),
    ):
        self.has = tuple(has)
        self.has_not = tuple(has_not)
        self.matches = tuple(_compile_all(regex))
        self.not_matches = tuple(_compile_all(not_regex))

    def accepts(self, line: str) -> bool:
        return accepts(line, self.has, self.has_not, self.matches, self.not_matches)

    def __repr__(self) -> str:
        return (
            f"LineFilter(has={list(self.has)}, has_not={list(self.has_not)}, "
            f"regex={[p.pattern for p in self.matches]}, "
            f"not_regex={[p.pattern for p in self.not_matches]})"
        )

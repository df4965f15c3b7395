"""ssh_config style host patterns.

A pattern is a comma separated list of sub-patterns. Each sub-pattern may be
negated with a leading ``!`` and may contain at most one wildcard: ``*``
matches any run of characters, ``?`` exactly one character.

In a list, the first sub-pattern that matches decides the outcome. A lone
negated pattern never matches.
"""

from __future__ import annotations

from dataclasses import dataclass

from gitauth.errors import HostPatternError

_WILDCARDS = "*?"


def is_host_pattern(value: str) -> bool:
    """True if value uses pattern syntax rather than naming a single host."""
    return any(c in value for c in "*?,!")


@dataclass(frozen=True, slots=True)
class _SinglePattern:
    negative: bool
    text: str  # Without the leading "!"

    @classmethod
    def parse(cls, pattern: str, full: str) -> _SinglePattern:
        negative = pattern.startswith("!")
        text = pattern[1:] if negative else pattern
        if "!" in text:
            raise HostPatternError(full, "'!' is only allowed at the start of a pattern")
        if sum(text.count(w) for w in _WILDCARDS) > 1:
            raise HostPatternError(full, "only one wildcard per pattern is supported")
        return cls(negative, text)

    def matches(self, host: str) -> bool:
        index = next((i for i, c in enumerate(self.text) if c in _WILDCARDS), None)
        if index is None:
            return host == self.text

        prefix = self.text[:index]
        suffix = self.text[index + 1 :]
        if len(host) < len(prefix) + len(suffix):
            return False
        if not host.startswith(prefix) or not host.endswith(suffix):
            return False
        middle = host[len(prefix) : len(host) - len(suffix)]
        if self.text[index] == "?":
            return len(middle) == 1
        return True


class HostPattern:
    """Parsed host pattern."""

    __slots__ = ("pattern", "_parts")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        body = pattern[:-1] if pattern.endswith(",") else pattern
        self._parts = tuple(_SinglePattern.parse(p, pattern) for p in body.split(","))

    def __repr__(self) -> str:
        return f"HostPattern({self.pattern!r})"

    def matches(self, host: str) -> bool:
        if len(self._parts) == 1:
            part = self._parts[0]
            return not part.negative and part.matches(host)
        for part in self._parts:
            if part.matches(host):
                return not part.negative
        return False

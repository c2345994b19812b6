"""User-agent substring matching (core domain).

In-app browsers often send no referrer at all, but announce themselves in
the user agent ("Twitter for iPhone", "[FB_IAB/FB4A;..."). This table maps
such user agents to a canonical referrer URL that the classifier can then
run through the normal rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class UserAgentRule:
    label: str
    url: str
    patterns: Tuple[str, ...]


class UserAgentTable:
    """Ordered, read-only list of user-agent rules."""

    def __init__(self, rules: Iterable[UserAgentRule] = ()) -> None:
        self._rules: Tuple[UserAgentRule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[UserAgentRule]:
        return iter(self._rules)

    def match(self, user_agent: str) -> Optional[UserAgentRule]:
        """Return the first rule with a pattern contained in ``user_agent``."""

        if not user_agent:
            return None
        for rule in self._rules:
            if any(pattern in user_agent for pattern in rule.patterns):
                return rule
        return None

    @classmethod
    def from_definitions(cls, definitions: Mapping) -> "UserAgentTable":
        """Build from ``{label: {"url": ..., "patterns": [...]}}`` in order."""

        rules = []
        for label, definition in definitions.items():
            if not definition.get("enabled", True):
                continue
            patterns = tuple(p for p in definition.get("patterns", []) or [] if p)
            if not patterns:
                continue
            rules.append(UserAgentRule(label=label, url=definition["url"], patterns=patterns))
        return cls(rules)

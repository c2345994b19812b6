"""Rule compilation and lookup (core domain)."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Optional, Tuple

from refscope.core.models import RULE_TYPES, ReferrerType


@dataclass(frozen=True)
class Rule:
    """Compiled rule stored under a single match key."""

    type: ReferrerType
    label: str = ""
    match_key: str = ""
    parameters: Tuple[str, ...] = ()


def normalize_match_key(key: str) -> str:
    """Lowercase the host part of a domain/path key and drop stray slashes.

    The path part keeps its case.
    """

    host, slash, path = key.strip().partition("/")
    return (host.lower() + slash + path).rstrip("/")


class RuleStore(Mapping):
    """Read-only mapping from match key to Rule.

    A store is never mutated after construction; ``merge`` builds a new one.
    That makes a single instance safe to share between concurrent callers.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None) -> None:
        entries: dict[str, Rule] = {}
        for rule in rules or ():
            entries[rule.match_key] = rule
        self._rules = MappingProxyType(entries)

    @classmethod
    def from_mapping(cls, entries: Mapping) -> "RuleStore":
        """Build a store keyed exactly as ``entries`` is, e.g. for overrides."""

        store = cls()
        store._rules = MappingProxyType(dict(entries))
        return store

    def __getitem__(self, key: str) -> Rule:
        return self._rules[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleStore({len(self)} rules)"

    def merge(self, other: Mapping) -> "RuleStore":
        """Return a new store; entries from ``other`` win on key collision."""

        merged = dict(self._rules)
        merged.update(other.items())
        return RuleStore.from_mapping(merged)

    def labels(self, rule_type: Optional[ReferrerType] = None) -> set[str]:
        return {
            rule.label
            for rule in self._rules.values()
            if rule_type is None or rule.type is rule_type
        }

    def count_by_type(self) -> dict[ReferrerType, int]:
        counts: dict[ReferrerType, int] = {}
        for rule in self._rules.values():
            counts[rule.type] = counts.get(rule.type, 0) + 1
        return counts

    @classmethod
    def from_definitions(cls, rule_type: ReferrerType, definitions: Mapping) -> "RuleStore":
        """Build a store from ``{label: {"domains": [...], "parameters": [...]}}``.

        Every domain of a definition becomes its own key pointing at a rule
        with the shared label and parameter list. Definitions with
        ``"enabled": false`` are skipped.
        """

        return cls(build_rules(rule_type, definitions))


def build_rules(rule_type: ReferrerType, definitions: Mapping) -> list[Rule]:
    """Normalize rule definitions into one Rule per match key.

    This keeps per-URL matching to plain dictionary lookups and avoids any
    ambiguity about key casing or missing optional fields.
    """

    if rule_type not in RULE_TYPES:
        raise ValueError(f"Rules cannot have type {rule_type}")

    compiled: list[Rule] = []
    for label, definition in definitions.items():
        if not definition.get("enabled", True):
            continue
        parameters = tuple(p.strip() for p in definition.get("parameters", []) or [] if p.strip())
        for domain in definition.get("domains", []) or []:
            key = normalize_match_key(domain)
            if not key:
                continue
            compiled.append(
                Rule(
                    type=rule_type,
                    label=label,
                    match_key=key,
                    parameters=parameters,
                )
            )
    return compiled

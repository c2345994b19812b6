"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any loader- or CLI-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ReferrerType(Enum):
    """Classification outcome. Rules only ever carry EMAIL, SEARCH or SOCIAL."""

    INVALID = 0
    INDIRECT = 1
    DIRECT = 2
    EMAIL = 3
    SEARCH = 4
    SOCIAL = 5

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "ReferrerType":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown referrer type: {name!r}") from None


RULE_TYPES = frozenset({ReferrerType.EMAIL, ReferrerType.SEARCH, ReferrerType.SOCIAL})


class GoogleSearchType(Enum):
    NOT_GOOGLE = 0
    ORGANIC = 1
    ADWORDS = 2

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class HostParts:
    """A hostname split around its public suffix."""

    subdomain: str
    domain: str
    tld: str

    @property
    def registered_domain(self) -> str:
        return f"{self.domain}.{self.tld}"


@dataclass(frozen=True)
class ParsedURL:
    """Syntactic parse of a referrer URL plus its host decomposition."""

    raw_url: str
    host: str
    parts: HostParts
    path: str
    query: dict[str, tuple[str, ...]] = field(default_factory=dict)
    fragment_query: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def subdomain(self) -> str:
        return self.parts.subdomain

    @property
    def domain(self) -> str:
        return self.parts.domain

    @property
    def tld(self) -> str:
        return self.parts.tld

    @property
    def registered_domain(self) -> str:
        return self.parts.registered_domain


@dataclass(frozen=True)
class Referrer:
    """Result of classifying a referrer.

    The shape is the same for every outcome; ``type`` tells callers which
    fields are meaningful. Invalid and blank referrers leave the host parts
    empty.
    """

    type: ReferrerType
    label: str = ""
    url: str = ""
    host: str = ""
    subdomain: str = ""
    domain: str = ""
    tld: str = ""
    path: str = ""
    query: str = ""
    google_type: GoogleSearchType = GoogleSearchType.NOT_GOOGLE

    @property
    def registered_domain(self) -> Optional[str]:
        if not self.domain:
            return None
        return f"{self.domain}.{self.tld}"

    def to_dict(self) -> dict:
        return {
            "type": str(self.type),
            "label": self.label,
            "url": self.url,
            "host": self.host,
            "subdomain": self.subdomain,
            "domain": self.domain,
            "tld": self.tld,
            "path": self.path,
            "query": self.query,
            "google_type": str(self.google_type),
        }

"""Hostname decomposition (core domain)."""

from __future__ import annotations

from typing import Optional

from refscope.core.models import HostParts
from refscope.core.ports import SuffixLookup


def decompose_host(host: str, suffix_lookup: SuffixLookup) -> Optional[HostParts]:
    """Split ``host`` into subdomain, domain and public suffix.

    Returns None when the host has no usable public suffix, or when nothing
    but the suffix is left (``com``, ``.com``). A pure last-two-labels split
    would be wrong for multi-label suffixes such as ``co.uk``, so the suffix
    always comes from the lookup.
    """

    tld = suffix_lookup.public_suffix(host)
    if not tld or len(host) - len(tld) < 2:
        return None

    # Drop the suffix and its separating dot.
    remainder = host[: len(host) - len(tld) - 1]
    subdomain, _, domain = remainder.rpartition(".")
    if not domain:
        return None
    return HostParts(subdomain=subdomain, domain=domain, tld=tld)

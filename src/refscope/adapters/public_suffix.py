"""Public-suffix adapter.

Implements the core SuffixLookup port on top of tldextract, using the
public-suffix snapshot bundled with the library so no network access is
needed at startup.
"""

from __future__ import annotations

import logging

import tldextract

LOGGER = logging.getLogger(__name__)


class TldextractSuffixLookup:
    """Thin tldextract wrapper that satisfies the SuffixLookup contract."""

    def __init__(self, include_private_domains: bool = False) -> None:
        # suffix_list_urls=() keeps tldextract on its bundled snapshot and
        # cache_dir=None keeps it from writing a cache to disk.
        self._extract = tldextract.TLDExtract(
            cache_dir=None,
            suffix_list_urls=(),
            include_psl_private_domains=include_private_domains,
        )
        LOGGER.debug("Public suffix lookup ready (private domains: %s)", include_private_domains)

    def public_suffix(self, host: str) -> str:
        return self._extract(host).suffix

    def registered_domain(self, host: str) -> str:
        """Registrable domain as tldextract derives it, "" when there is none."""

        result = self._extract(host)
        if not result.domain or not result.suffix:
            return ""
        return f"{result.domain}.{result.suffix}"

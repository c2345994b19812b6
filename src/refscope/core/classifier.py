"""Core referrer classification.

The classifier enforces a strict order:
1) Trim the raw string; blank means the visit was direct
2) Syntactic parse + public-suffix aware host decomposition (validity gate)
3) Optional direct-domain override
4) Layered rule lookup, most specific key first, then single host labels
5) Search-term recovery from the query string, then the fragment
6) Google organic/paid split for Google search rules

This module is I/O free. Rules and the suffix lookup are injected, so one
instance can be shared by any number of callers.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Iterable, Mapping, Optional
from urllib.parse import parse_qsl, urlsplit

from refscope.core.hostnames import decompose_host
from refscope.core.models import GoogleSearchType, ParsedURL, Referrer, ReferrerType
from refscope.core.ports import SuffixLookup
from refscope.core.rules_engine import Rule
from refscope.core.user_agents import UserAgentTable

LOGGER = logging.getLogger(__name__)

_TRIM_CHARS = " \t\r\n"
_ADWORDS_PREFIXES = ("/aclk", "/pagead/aclk")
_WORD_START = re.compile(r"(?:^|(?<=\W))(\w)")
_LOCALE_LABEL = re.compile(r"^[a-z]{2}$")
# Characters a URL host can never contain.
_BAD_HOST_CHARS = re.compile(r"[\s\x00-\x1f\x7f<>\"{}|\\^`%]")


def title_case(text: str) -> str:
    """Upper-case the first letter of each word, leaving the rest untouched."""

    return _WORD_START.sub(lambda match: match.group(1).upper(), text)


def clean_path(path: str) -> str:
    """Strip ``;``-delimited path parameters (``/search;_ylt=...``)."""

    return path.split(";", 1)[0]


def join_key(base: str, path: str) -> str:
    """Join a host and a path the way a POSIX path join cleans them."""

    return posixpath.normpath(f"{base}/{path}")


def _multimap(raw: str) -> dict[str, tuple[str, ...]]:
    values: dict[str, list[str]] = {}
    for key, value in parse_qsl(raw, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    return {key: tuple(items) for key, items in values.items()}


def parse_url(raw_url: str, suffix_lookup: SuffixLookup) -> Optional[ParsedURL]:
    """Parse and decompose ``raw_url``; None means it cannot be classified.

    Scheme-less input such as ``example.org/path`` is read as a network-path
    reference, so its first segment is taken as the host.
    """

    try:
        parts = urlsplit(raw_url)
        if not parts.scheme and not parts.netloc and not raw_url.startswith("/"):
            parts = urlsplit(f"//{raw_url}")
        host = parts.hostname or ""
    except ValueError:
        return None

    if not host or _BAD_HOST_CHARS.search(host):
        return None

    host_parts = decompose_host(host, suffix_lookup)
    if host_parts is None:
        return None

    return ParsedURL(
        raw_url=raw_url,
        host=host,
        parts=host_parts,
        path=clean_path(parts.path),
        query=_multimap(parts.query),
        fragment_query=_multimap(parts.fragment),
    )


def extract_query(values: Mapping[str, tuple[str, ...]], parameters: Iterable[str]) -> str:
    """Return the first non-empty value among ``parameters``, in their order."""

    for param in parameters:
        found = values.get(param)
        if found and found[0]:
            return found[0]
    return ""


def google_search_type(rule_type: ReferrerType, label: str, path: str) -> GoogleSearchType:
    if rule_type is not ReferrerType.SEARCH or "Google" not in label:
        return GoogleSearchType.NOT_GOOGLE
    if path.startswith(_ADWORDS_PREFIXES):
        return GoogleSearchType.ADWORDS
    return GoogleSearchType.ORGANIC


class ReferrerClassifier:
    """Turns referrer URLs into Referrer records using an immutable rule store."""

    def __init__(
        self,
        rules: Mapping[str, Rule],
        suffix_lookup: SuffixLookup,
        user_agents: Optional[UserAgentTable] = None,
        locale_subdomains: bool = False,
    ) -> None:
        self._rules = rules
        self._suffix_lookup = suffix_lookup
        self._user_agents = user_agents or UserAgentTable()
        self._locale_subdomains = locale_subdomains

    @property
    def rules(self) -> Mapping[str, Rule]:
        return self._rules

    def parse(self, url: str) -> Referrer:
        """Classify one referrer URL. Never raises; failures are INVALID."""

        return self.parse_with_direct(url, ())

    def parse_with_direct(self, url: str, direct_domains: Iterable[str]) -> Referrer:
        """Like ``parse`` but hosts listed in ``direct_domains`` are DIRECT."""

        trimmed = url.strip(_TRIM_CHARS)
        if not trimmed:
            return Referrer(type=ReferrerType.DIRECT)

        parsed = parse_url(trimmed, self._suffix_lookup)
        if parsed is None:
            LOGGER.debug("Invalid referrer %r", url)
            return Referrer(type=ReferrerType.INVALID, url=url)

        for domain in direct_domains:
            if parsed.host == domain.strip().lower():
                return Referrer(
                    type=ReferrerType.DIRECT,
                    url=trimmed,
                    host=parsed.host,
                    subdomain=parsed.subdomain,
                    domain=parsed.domain,
                    tld=parsed.tld,
                    path=parsed.path,
                )

        return self.classify(parsed)

    def parse_with(
        self,
        url: str,
        direct_domains: Optional[Iterable[str]] = None,
        user_agent: str = "",
    ) -> Referrer:
        """Classify ``url``, falling back to the user agent when it says nothing.

        The user agent is only consulted when the URL is blank or invalid; a
        usable URL always wins.
        """

        referrer = self.parse_with_direct(url, direct_domains or ())
        blank = referrer.type is ReferrerType.DIRECT and not referrer.url
        if not (blank or referrer.type is ReferrerType.INVALID):
            return referrer

        ua_rule = self._user_agents.match(user_agent)
        if ua_rule is None:
            return referrer

        LOGGER.debug("User agent matched %s", ua_rule.label)
        fallback = self.parse(ua_rule.url)
        if fallback.type is ReferrerType.INVALID:
            return referrer
        return fallback

    def classify(self, parsed: ParsedURL) -> Referrer:
        """Match an already parsed URL against the rule store."""

        rule = self._lookup(parsed)
        if rule is None:
            return Referrer(
                type=ReferrerType.INDIRECT,
                label=title_case(parsed.domain),
                url=parsed.raw_url,
                host=parsed.host,
                subdomain=parsed.subdomain,
                domain=parsed.domain,
                tld=parsed.tld,
                path=parsed.path,
            )

        # Some engines keep their state after '#', so the fragment is a
        # second chance for the search term.
        query = extract_query(parsed.query, rule.parameters) or extract_query(
            parsed.fragment_query, rule.parameters
        )
        return Referrer(
            type=rule.type,
            label=rule.label,
            url=parsed.raw_url,
            host=parsed.host,
            subdomain=parsed.subdomain,
            domain=parsed.domain,
            tld=parsed.tld,
            path=parsed.path,
            query=query,
            google_type=google_search_type(rule.type, rule.label, parsed.path),
        )

    def _candidate_keys(self, parsed: ParsedURL) -> list[tuple[str, bool]]:
        """Return (key, social_only) pairs, most specific first."""

        host_keys = [(parsed.host, False)]
        locale_host = self._strip_locale(parsed)
        if locale_host:
            host_keys.append((locale_host, True))

        keys = [(join_key(host, parsed.path), social_only) for host, social_only in host_keys]
        keys.append((join_key(parsed.registered_domain, parsed.path), False))
        keys.extend(host_keys)
        keys.append((parsed.registered_domain, False))
        # Host-label rules (``google``) match any label, left to right.
        keys.extend((label, False) for label in parsed.host.split("."))
        return keys

    def _strip_locale(self, parsed: ParsedURL) -> Optional[str]:
        if not self._locale_subdomains or not parsed.subdomain:
            return None
        label, _, rest = parsed.host.partition(".")
        if not _LOCALE_LABEL.match(label):
            return None
        return rest

    def _lookup(self, parsed: ParsedURL) -> Optional[Rule]:
        for key, social_only in self._candidate_keys(parsed):
            rule = self._rules.get(key)
            if rule is None:
                continue
            if social_only and rule.type is not ReferrerType.SOCIAL:
                continue
            return rule
        return None

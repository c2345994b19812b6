"""Referrer classification for analytics pipelines.

Typical use::

    from refscope import build_default_classifier

    classifier = build_default_classifier()
    referrer = classifier.parse("http://search.yahoo.com/search?p=hello")
    referrer.type, referrer.label, referrer.query
"""

from __future__ import annotations

from refscope.adapters.public_suffix import TldextractSuffixLookup
from refscope.adapters.rule_loader import (
    RulesError,
    load_csv_rules,
    load_default_rules,
    load_default_user_agents,
    load_json_rules,
    load_user_agent_rules,
)
from refscope.core.classifier import ReferrerClassifier
from refscope.core.models import GoogleSearchType, Referrer, ReferrerType
from refscope.core.rules_engine import Rule, RuleStore
from refscope.core.user_agents import UserAgentRule, UserAgentTable

__all__ = [
    "GoogleSearchType",
    "Referrer",
    "ReferrerClassifier",
    "ReferrerType",
    "Rule",
    "RuleStore",
    "RulesError",
    "TldextractSuffixLookup",
    "UserAgentRule",
    "UserAgentTable",
    "build_default_classifier",
    "load_csv_rules",
    "load_default_rules",
    "load_default_user_agents",
    "load_json_rules",
    "load_user_agent_rules",
]


def build_default_classifier(locale_subdomains: bool = False) -> ReferrerClassifier:
    """Classifier over the bundled rules, user agents and suffix snapshot."""

    return ReferrerClassifier(
        rules=load_default_rules(),
        suffix_lookup=TldextractSuffixLookup(),
        user_agents=load_default_user_agents(),
        locale_subdomains=locale_subdomains,
    )

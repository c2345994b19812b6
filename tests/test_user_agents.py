from __future__ import annotations

from refscope.core.user_agents import UserAgentRule, UserAgentTable


def test_first_matching_rule_wins() -> None:
    table = UserAgentTable(
        [
            UserAgentRule(label="Twitter", url="twitter://twitter.com", patterns=("Twitter for iPhone",)),
            UserAgentRule(label="Any iPhone", url="iphone://apple.com", patterns=("iPhone",)),
        ]
    )
    assert table.match("Mobile/11B554a Twitter for iPhone").label == "Twitter"
    assert table.match("CPU iPhone OS 7_0_4").label == "Any iPhone"


def test_no_match_and_blank_user_agent() -> None:
    table = UserAgentTable([UserAgentRule(label="Twitter", url="twitter://twitter.com", patterns=("Twitter",))])
    assert table.match("Mozilla/5.0 Safari") is None
    assert table.match("") is None


def test_matching_is_case_sensitive() -> None:
    table = UserAgentTable([UserAgentRule(label="Facebook", url="facebook://facebook.com", patterns=("FB_IAB",))])
    assert table.match("fb_iab") is None


def test_from_definitions_keeps_order_and_skips_empty() -> None:
    table = UserAgentTable.from_definitions(
        {
            "Pinterest": {"url": "pinterest://pinterest.com", "patterns": ["[Pinterest/"]},
            "Disabled": {"url": "x://x.com", "patterns": ["X"], "enabled": False},
            "Empty": {"url": "y://y.com", "patterns": [""]},
        }
    )
    assert [rule.label for rule in table] == ["Pinterest"]

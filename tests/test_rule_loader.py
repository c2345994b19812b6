from __future__ import annotations

import io
import json

import pytest

from refscope.adapters.public_suffix import TldextractSuffixLookup
from refscope.adapters.rule_loader import (
    RulesError,
    load_csv_rules,
    load_default_rules,
    load_default_user_agents,
    load_json_rules,
    load_rule_file,
    load_user_agent_rules,
)
from refscope.core.classifier import ReferrerClassifier
from refscope.core.models import ReferrerType


def test_load_json_rules_from_stream() -> None:
    payload = {
        "email": {"Zambo Mail": {"domains": ["mail.zambo.com"]}},
        "search": {"Zambo": {"domains": ["zambo.com", "zambo.com/search"], "parameters": ["q"]}},
        "social": {"Zambook": {"domains": ["zambook.com"]}},
    }
    store = load_json_rules(io.StringIO(json.dumps(payload)))

    assert len(store) == 4
    assert store["mail.zambo.com"].type is ReferrerType.EMAIL
    assert store["zambo.com/search"].parameters == ("q",)
    assert store["zambook.com"].type is ReferrerType.SOCIAL


def test_social_section_overrides_search_on_shared_key() -> None:
    payload = {
        "search": {"Search": {"domains": ["zambo.com"]}},
        "social": {"Social": {"domains": ["zambo.com"]}},
    }
    store = load_json_rules(io.StringIO(json.dumps(payload)))
    assert store["zambo.com"].label == "Social"


def test_load_json_rules_from_path(tmp_path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"social": {"Zambook": {"domains": ["zambook.com"]}}}), encoding="utf-8")
    assert list(load_rule_file(str(path))) == ["zambook.com"]


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[]",
        '{"video": {}}',
        '{"search": []}',
        '{"search": {"Zambo": {"parameters": ["q"]}}}',
        '{"search": {"Zambo": {"domains": []}}}',
        '{"search": {"Zambo": {"domains": ["zambo.com"], "parameters": "q"}}}',
    ],
)
def test_malformed_json_rules_raise(payload: str) -> None:
    with pytest.raises(RulesError):
        load_json_rules(io.StringIO(payload))


def test_missing_file_raises_rules_error(tmp_path) -> None:
    with pytest.raises(RulesError, match="not found"):
        load_json_rules(str(tmp_path / "missing.json"))


def test_load_csv_rules() -> None:
    csv = io.StringIO(
        "# label:domain:params\n"
        "\n"
        "Google:google.com:q,query\n"
        "Google:google.ca:q,query\n"
        "Yahoo!:search.yahoo.com:p\n"
    )
    store = load_csv_rules(csv)

    assert set(store) == {"google.com", "google.ca", "search.yahoo.com"}
    assert store["google.ca"].parameters == ("q", "query")
    assert store["search.yahoo.com"].type is ReferrerType.SEARCH


def test_load_csv_rules_other_type_without_params() -> None:
    store = load_csv_rules(io.StringIO("Zambook:zambook.com\n"), ReferrerType.SOCIAL)
    assert store["zambook.com"].type is ReferrerType.SOCIAL
    assert store["zambook.com"].parameters == ()


def test_load_csv_rules_with_host_labels() -> None:
    store = load_csv_rules(io.StringIO("Google:google:q,query\nYandex:yandex:text\n"))

    assert set(store) == {"google", "yandex"}
    assert store["google"].parameters == ("q", "query")

    classifier = ReferrerClassifier(store, TldextractSuffixLookup())
    actual = classifier.parse("http://www.google.com/search?q=x")
    assert (actual.type, actual.label, actual.query) == (ReferrerType.SEARCH, "Google", "x")
    assert classifier.parse("http://yandex.ru/yandsearch?text=y").query == "y"


@pytest.mark.parametrize("line", ["justalabel", "Label:", ":domain.com", "a:b:c:d"])
def test_malformed_csv_line_raises(line: str) -> None:
    with pytest.raises(RulesError):
        load_csv_rules(io.StringIO(line + "\n"))


def test_csv_rules_cannot_have_non_rule_type() -> None:
    with pytest.raises(RulesError):
        load_csv_rules(io.StringIO("X:x.com\n"), ReferrerType.DIRECT)


def test_load_user_agent_rules() -> None:
    payload = {"Zambo": {"url": "zambo://zambo.com", "patterns": ["ZamboApp"]}}
    table = load_user_agent_rules(io.StringIO(json.dumps(payload)))
    assert len(table) == 1
    assert table.match("Mozilla ZamboApp/2").label == "Zambo"


def test_user_agent_rule_needs_url() -> None:
    with pytest.raises(RulesError):
        load_user_agent_rules(io.StringIO('{"Zambo": {"patterns": ["ZamboApp"]}}'))


def test_bundled_rules_load() -> None:
    store = load_default_rules()
    assert store["mail.google.com"].label == "Gmail"
    assert store["google.com"].type is ReferrerType.SEARCH
    assert store["twitter.com"].type is ReferrerType.SOCIAL
    assert len(load_default_user_agents()) > 0

from __future__ import annotations

import io
import json
import logging

import pytest

from refscope import app
from refscope.settings import (
    ENV_CONFIG,
    ENV_DIRECT_DOMAINS,
    ENV_LOCALE_SUBDOMAINS,
    ENV_LOG_LEVEL,
    ENV_RULES,
    ENV_USER_AGENTS,
)

_ENV_VARS = (ENV_CONFIG, ENV_DIRECT_DOMAINS, ENV_LOCALE_SUBDOMAINS, ENV_LOG_LEVEL, ENV_RULES, ENV_USER_AGENTS)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    logging.getLogger().handlers.clear()


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def test_parse_prints_one_json_object_per_url(capsys) -> None:
    code = app.main(["parse", "http://search.yahoo.com/search?p=hello", "http://walrus.com/"])
    results = _json_lines(capsys.readouterr().out)

    assert code == 0
    assert [r["type"] for r in results] == ["search", "indirect"]
    assert results[0]["label"] == "Yahoo!"
    assert results[0]["query"] == "hello"
    assert results[0]["google_type"] == "not_google"
    assert results[1]["label"] == "Walrus"


def test_parse_reads_stdin_and_applies_direct_domains(capsys, monkeypatch) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("http://mysite.com/a\n\nhttps://mail.google.com/x\n"))
    code = app.main(["parse", "--direct", "MySite.com"])
    results = _json_lines(capsys.readouterr().out)

    assert code == 0
    assert [r["type"] for r in results] == ["direct", "direct", "email"]
    assert results[0]["domain"] == "mysite"
    assert results[1]["url"] == ""


def test_parse_with_user_agent(capsys) -> None:
    app.main(["parse", "", "--user-agent", "Mobile/11B554a Twitter for iPhone"])
    (result,) = _json_lines(capsys.readouterr().out)
    assert (result["type"], result["label"]) == ("social", "Twitter")


def test_extra_rules_override_defaults(tmp_path, capsys) -> None:
    rules = tmp_path / "custom.json"
    rules.write_text(json.dumps({"social": {"Walrus Club": {"domains": ["walrus.com"]}}}), encoding="utf-8")

    app.main(["parse", "--rules", str(rules), "http://walrus.com/"])
    (result,) = _json_lines(capsys.readouterr().out)
    assert (result["type"], result["label"]) == ("social", "Walrus Club")


def test_csv_rules_file(tmp_path, capsys) -> None:
    rules = tmp_path / "engines.csv"
    rules.write_text("Walrus Search:walrus.com:w\n", encoding="utf-8")

    app.main(["parse", "--rules", str(rules), "http://walrus.com/?w=tusks"])
    (result,) = _json_lines(capsys.readouterr().out)
    assert (result["type"], result["query"]) == ("search", "tusks")


def test_bad_rules_file_exits_with_error(tmp_path, capsys) -> None:
    rules = tmp_path / "broken.json"
    rules.write_text("{not json", encoding="utf-8")

    assert app.main(["parse", "--rules", str(rules), "http://walrus.com/"]) == 2
    assert "invalid JSON" in capsys.readouterr().err


def test_bad_config_exits_with_error(tmp_path, capsys) -> None:
    assert app.main(["--config", str(tmp_path / "missing.json"), "parse", "x"]) == 2
    assert "not found" in capsys.readouterr().err


def test_rules_summary(capsys) -> None:
    assert app.main(["rules"]) == 0
    out = capsys.readouterr().out
    assert "email:" in out
    assert "search:" in out
    assert "social:" in out
    assert "total:" in out


def test_no_command_prints_help(capsys) -> None:
    assert app.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_configure_logging_writes_to_file(tmp_path) -> None:
    log_path = tmp_path / "logs" / "refscope.log"
    config = app.LoggingConfig(level="INFO", console=False, file_path=str(log_path))
    app.configure_logging(config)
    logging.getLogger("refscope.test").info("hello log")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello log" in log_path.read_text(encoding="utf-8")

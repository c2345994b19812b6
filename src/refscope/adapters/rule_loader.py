"""Rule definition loaders.

Turns rule files (JSON, or the older colon-delimited search-engine list)
into RuleStores and user-agent tables. Any malformed definition raises
RulesError so a broken rules file fails at startup, not per request.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from importlib import resources
from typing import IO, Iterator, Union

from refscope.core.models import ReferrerType
from refscope.core.rules_engine import RuleStore
from refscope.core.user_agents import UserAgentTable

LOGGER = logging.getLogger(__name__)

Source = Union[str, os.PathLike, IO[str]]

DATA_PACKAGE = "refscope.data"
DEFAULT_RULES_FILE = "referrers.json"
DEFAULT_USER_AGENTS_FILE = "user_agents.json"

# Sections merge in this order, so a later section wins on a shared key.
SECTION_ORDER = ("email", "search", "social")


class RulesError(ValueError):
    pass


@contextmanager
def _open(source: Source) -> Iterator[IO[str]]:
    if hasattr(source, "read"):
        yield source
        return
    try:
        handle = open(source, "r", encoding="utf-8")
    except FileNotFoundError:
        raise RulesError(f"rules file not found: {source}") from None
    with handle:
        yield handle


def _source_name(source: Source) -> str:
    return str(getattr(source, "name", source))


def _load_json(source: Source) -> dict:
    with _open(source) as handle:
        try:
            decoded = json.load(handle)
        except json.JSONDecodeError as exc:
            raise RulesError(f"{_source_name(source)}: invalid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise RulesError(f"{_source_name(source)}: top level must be an object")
    return decoded


def _check_definitions(name: str, section: str, definitions: object, required: str) -> dict:
    if not isinstance(definitions, dict):
        raise RulesError(f"{name}: [{section}] must be an object of labels")
    for label, definition in definitions.items():
        if not isinstance(definition, dict):
            raise RulesError(f"{name}: [{section}].{label} must be an object")
        values = definition.get(required)
        if not isinstance(values, list) or not values or not all(isinstance(v, str) for v in values):
            raise RulesError(f"{name}: [{section}].{label} needs a non-empty {required!r} list")
        params = definition.get("parameters", [])
        if not isinstance(params, list) or not all(isinstance(p, str) for p in params):
            raise RulesError(f"{name}: [{section}].{label}.parameters must be a list")
    return definitions


def load_json_rules(source: Source) -> RuleStore:
    """Load ``{"email": {...}, "search": {...}, "social": {...}}`` rules.

    Each section maps a label to ``{"domains": [...], "parameters": [...]}``.
    Missing sections are fine; unknown ones are an error.
    """

    name = _source_name(source)
    decoded = _load_json(source)

    unknown = set(decoded) - set(SECTION_ORDER)
    if unknown:
        raise RulesError(f"{name}: unknown rule section(s): {', '.join(sorted(unknown))}")

    store = RuleStore()
    for section in SECTION_ORDER:
        if section not in decoded:
            continue
        definitions = _check_definitions(name, section, decoded[section], "domains")
        store = store.merge(RuleStore.from_definitions(ReferrerType.from_name(section), definitions))

    LOGGER.info("Loaded %s rules from %s", len(store), name)
    return store


def load_csv_rules(source: Source, rule_type: ReferrerType = ReferrerType.SEARCH) -> RuleStore:
    """Load ``Label:domain:param1,param2`` lines (one rule per line).

    The domain field is either a host (``google.com``), matched like JSON
    rules, or a bare host label (``google``), which the classifier matches
    against every label of the host once the exact keys miss. Blank lines
    and ``#`` comments are skipped. The parameter field is optional for
    non-search rules.
    """

    name = _source_name(source)
    definitions: dict[str, dict] = {}
    with _open(source) as handle:
        for lineno, raw in enumerate(handle, start=1):
            line = raw.strip(" \t\r\n")
            if not line or line.startswith("#"):
                continue
            tokens = line.split(":")
            if len(tokens) not in (2, 3) or not tokens[0] or not tokens[1]:
                raise RulesError(f"{name}:{lineno}: expected Label:domain[:params], got {line!r}")
            label, domain = tokens[0].strip(), tokens[1].strip()
            params = tokens[2].split(",") if len(tokens) == 3 else []
            entry = definitions.setdefault(label, {"domains": [], "parameters": params})
            entry["domains"].append(domain)

    try:
        store = RuleStore.from_definitions(rule_type, definitions)
    except ValueError as exc:
        raise RulesError(f"{name}: {exc}") from exc
    LOGGER.info("Loaded %s rules from %s", len(store), name)
    return store


def load_user_agent_rules(source: Source) -> UserAgentTable:
    """Load ``{label: {"url": ..., "patterns": [...]}}`` user-agent rules."""

    name = _source_name(source)
    decoded = _load_json(source)
    _check_definitions(name, "user_agents", decoded, "patterns")
    for label, definition in decoded.items():
        if not isinstance(definition.get("url"), str) or not definition["url"]:
            raise RulesError(f"{name}: [user_agents].{label} needs a 'url'")
    table = UserAgentTable.from_definitions(decoded)
    LOGGER.info("Loaded %s user-agent rules from %s", len(table), name)
    return table


def load_rule_file(path: str) -> RuleStore:
    """Pick the loader from the file extension (.json, otherwise CSV)."""

    if str(path).lower().endswith(".json"):
        return load_json_rules(path)
    return load_csv_rules(path)


def load_default_rules() -> RuleStore:
    with resources.files(DATA_PACKAGE).joinpath(DEFAULT_RULES_FILE).open("r", encoding="utf-8") as handle:
        return load_json_rules(handle)


def load_default_user_agents() -> UserAgentTable:
    with resources.files(DATA_PACKAGE).joinpath(DEFAULT_USER_AGENTS_FILE).open("r", encoding="utf-8") as handle:
        return load_user_agent_rules(handle)

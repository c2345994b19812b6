"""Application entry point for the refscope command line."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional, TextIO

from art import text2art

from refscope.adapters.public_suffix import TldextractSuffixLookup
from refscope.adapters.rule_loader import (
    RulesError,
    load_default_rules,
    load_default_user_agents,
    load_rule_file,
    load_user_agent_rules,
)
from refscope.core.classifier import ReferrerClassifier
from refscope.core.config import LoggingConfig
from refscope.core.rules_engine import RuleStore
from refscope.settings import ConfigError, Settings, load_settings

NAME = "REFSCOPE"
FONT = "tarty-1"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _print_banner(stream: TextIO) -> None:
    print(text2art(NAME, font=FONT, space=1), file=stream)


def configure_logging(config: LoggingConfig) -> None:
    if not config.enabled:
        return

    level = getattr(logging, config.level, logging.WARNING)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = []

    if config.console:
        # stderr keeps stdout free for the JSON results.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config.file_path:
        directory = os.path.dirname(config.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


def build_rules(settings: Settings, extra_files: Iterable[str] = ()) -> RuleStore:
    """Bundled rules first, then configured files, then ad-hoc files; later wins."""

    rules = load_default_rules() if settings.use_default_rules else RuleStore()
    for path in (*settings.rule_files, *extra_files):
        rules = rules.merge(load_rule_file(path))
    return rules


def build_classifier(settings: Settings, extra_rule_files: Iterable[str] = ()) -> ReferrerClassifier:
    rules = build_rules(settings, extra_rule_files)
    if settings.user_agent_file:
        user_agents = load_user_agent_rules(settings.user_agent_file)
    else:
        user_agents = load_default_user_agents()
    return ReferrerClassifier(
        rules=rules,
        suffix_lookup=TldextractSuffixLookup(),
        user_agents=user_agents,
        locale_subdomains=settings.classifier.locale_subdomains,
    )


def _iter_urls(urls: list[str], stdin: TextIO) -> Iterable[str]:
    if urls:
        yield from urls
        return
    for line in stdin:
        # Keep blank lines: a blank referrer is a (direct) result too.
        yield line.rstrip("\r\n")


def _parse(args: argparse.Namespace, settings: Settings, out: TextIO) -> int:
    logger = logging.getLogger(__name__)
    classifier = build_classifier(settings, args.rules)
    logger.info("%s rules are loaded", len(classifier.rules))

    direct_domains = (*settings.classifier.direct_domains, *(d.lower() for d in args.direct))
    counts: dict[str, int] = {}
    for url in _iter_urls(args.urls, sys.stdin):
        referrer = classifier.parse_with(url, direct_domains, args.user_agent)
        counts[str(referrer.type)] = counts.get(str(referrer.type), 0) + 1
        print(json.dumps(referrer.to_dict(), ensure_ascii=False), file=out)

    logger.info("Classified referrers: %s", counts)
    return 0


def _rules(args: argparse.Namespace, settings: Settings, out: TextIO) -> int:
    _print_banner(sys.stderr)
    rules = build_rules(settings, args.rules)
    for rule_type, count in sorted(rules.count_by_type().items(), key=lambda item: item[0].value):
        print(f"{rule_type}: {count} keys, {len(rules.labels(rule_type))} labels", file=out)
    print(f"total: {len(rules)} keys", file=out)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="refscope")
    parser.add_argument("--config", help="Path to a refscope.json config file")
    subparsers = parser.add_subparsers(dest="command")

    parse_parser = subparsers.add_parser("parse", help="Classify referrer URLs (args or stdin)")
    parse_parser.add_argument("urls", nargs="*", help="Referrer URLs; read from stdin when omitted")
    parse_parser.add_argument("--direct", action="append", default=[], help="Domain treated as direct")
    parse_parser.add_argument("--user-agent", default="", help="User agent for in-app referrers")
    parse_parser.add_argument("--rules", action="append", default=[], help="Extra rule file (.json or CSV)")
    parse_parser.add_argument(
        "--locale-subdomains",
        action="store_true",
        help="Match es.reddit.com style hosts against social rules",
    )

    rules_parser = subparsers.add_parser("rules", help="Summarize the loaded rules")
    rules_parser.add_argument("--rules", action="append", default=[], help="Extra rule file (.json or CSV)")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"refscope: {exc}", file=sys.stderr)
        return 2
    configure_logging(settings.logging)
    logger = logging.getLogger(__name__)

    if getattr(args, "locale_subdomains", False):
        settings = replace(settings, classifier=replace(settings.classifier, locale_subdomains=True))

    try:
        if args.command == "rules":
            return _rules(args, settings, sys.stdout)
        return _parse(args, settings, sys.stdout)
    except RulesError as exc:
        logger.error("Failed to load rules: %s", exc)
        print(f"refscope: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())

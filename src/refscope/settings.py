"""Runtime configuration for refscope.

All user-editable settings (extra rule files, direct domains, matching mode,
logging) live in a single JSON file for quick edits without touching Python.
Environment variables (optionally from a .env file) override the file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from dotenv import load_dotenv

from refscope.core.config import ClassifierConfig, LoggingConfig

DEFAULT_CONFIG_NAME = "refscope.json"

ENV_CONFIG = "REFSCOPE_CONFIG"
ENV_RULES = "REFSCOPE_RULES"
ENV_USER_AGENTS = "REFSCOPE_USER_AGENTS"
ENV_DIRECT_DOMAINS = "REFSCOPE_DIRECT_DOMAINS"
ENV_LOCALE_SUBDOMAINS = "REFSCOPE_LOCALE_SUBDOMAINS"
ENV_LOG_LEVEL = "REFSCOPE_LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs to build a classifier."""

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # Extra rule files merged over the bundled defaults, in order.
    rule_files: Tuple[str, ...] = ()
    user_agent_file: str = ""
    use_default_rules: bool = True


def _split_list(raw: str, sep: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(sep) if item.strip())


def _as_str_list(config: dict, key: str) -> Tuple[str, ...]:
    value = config.get(key, [])
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key!r} must be a list of strings")
    return tuple(item.strip() for item in value if item.strip())


def _as_bool(config: dict, key: str, default: bool) -> bool:
    value = config.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key!r} must be true or false")
    return value


def _load_json_config(path: str) -> dict:
    """Load the JSON config with a flat, user-friendly schema."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            config = json.load(handle)
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return config


def _resolve(base_dir: str, path: str) -> str:
    if not path or os.path.isabs(path):
        return path
    return os.path.join(base_dir, path)


def _logging_config(raw: dict, base_dir: str) -> LoggingConfig:
    if not isinstance(raw, dict):
        raise ConfigError("'logging' must be an object")
    file_cfg = raw.get("file", {}) or {}
    if not isinstance(file_cfg, dict):
        raise ConfigError("'logging.file' must be an object")
    file_path = file_cfg.get("path", "logs/refscope.log") if _as_bool(file_cfg, "enabled", False) else ""
    try:
        return LoggingConfig(
            enabled=_as_bool(raw, "enabled", True),
            level=str(raw.get("level", "WARNING")).upper(),
            console=_as_bool(raw, "console", True),
            file_path=_resolve(base_dir, file_path),
            max_bytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backup_count=int(file_cfg.get("backup_count", 5)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid logging settings: {exc}") from exc


def load_settings(path: Optional[str] = None) -> Settings:
    """Build Settings from an optional JSON file and the environment.

    Without ``path`` the file named by REFSCOPE_CONFIG is used, then
    ``refscope.json`` in the working directory if present. A missing
    explicit path is an error; a missing default file is not.
    """

    load_dotenv()

    explicit = path or os.getenv(ENV_CONFIG)
    if explicit:
        config = _load_json_config(explicit)
    elif os.path.exists(DEFAULT_CONFIG_NAME):
        explicit = DEFAULT_CONFIG_NAME
        config = _load_json_config(DEFAULT_CONFIG_NAME)
    else:
        config = {}
    # Relative paths in the file are relative to the file itself.
    base_dir = os.path.dirname(os.path.abspath(explicit)) if explicit else os.getcwd()

    rule_files = tuple(_resolve(base_dir, item) for item in _as_str_list(config, "rules"))
    user_agent_file = _resolve(base_dir, str(config.get("user_agents", "") or ""))
    direct_domains = _as_str_list(config, "direct_domains")
    locale_subdomains = _as_bool(config, "locale_subdomains", False)
    raw_logging = config.get("logging")
    logging_config = _logging_config({} if raw_logging is None else raw_logging, base_dir)

    # Environment overrides.
    env_rules = os.getenv(ENV_RULES)
    if env_rules:
        rule_files = _split_list(env_rules, os.pathsep)
    env_user_agents = os.getenv(ENV_USER_AGENTS)
    if env_user_agents:
        user_agent_file = env_user_agents
    env_direct = os.getenv(ENV_DIRECT_DOMAINS)
    if env_direct:
        direct_domains = _split_list(env_direct, ",")
    env_locale = os.getenv(ENV_LOCALE_SUBDOMAINS)
    if env_locale:
        locale_subdomains = env_locale.strip().lower() in _TRUTHY
    env_level = os.getenv(ENV_LOG_LEVEL)
    if env_level:
        logging_config = replace(logging_config, level=env_level.strip().upper())

    return Settings(
        classifier=ClassifierConfig(
            direct_domains=tuple(domain.lower() for domain in direct_domains),
            locale_subdomains=locale_subdomains,
        ),
        logging=logging_config,
        rule_files=rule_files,
        user_agent_file=user_agent_file,
        use_default_rules=_as_bool(config, "use_default_rules", True),
    )

"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so the app layer can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ClassifierConfig:
    """Matching settings for the referrer classifier."""

    direct_domains: Tuple[str, ...] = ()
    # Opt-in: let es.reddit.com fall back to reddit.com keyed social rules.
    locale_subdomains: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings consumed by the app layer."""

    enabled: bool = True
    level: str = "WARNING"
    console: bool = True
    file_path: str = ""
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5

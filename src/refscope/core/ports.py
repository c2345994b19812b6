"""Ports (interfaces) used by the core classifier.

Ports define the minimal contracts for the collaborators the core consumes
so that the classifier can be reused with different public-suffix sources.
"""

from __future__ import annotations

from typing import Protocol


class SuffixLookup(Protocol):
    """Public-suffix operations required by the hostname decomposer."""

    def public_suffix(self, host: str) -> str:
        """Return the longest public suffix of ``host``, or "" if none applies."""
        ...

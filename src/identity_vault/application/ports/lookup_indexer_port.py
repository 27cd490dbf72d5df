"""Port for deterministic keyed lookup tokens."""

from __future__ import annotations

from typing import Protocol


class LookupIndexerPort(Protocol):
    """Equality-searchable token contract for normalized identity values."""

    def index(self, value: str) -> str:
        """Return the fixed-length lookup token for `value`."""

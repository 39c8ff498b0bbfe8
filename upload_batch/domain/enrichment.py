"""
Pass-scoped enrichment cache.

One EnrichmentCache is created at the start of a processing pass, handed to
every handler call of that pass, and dropped when the pass ends.  It maps a
location code to the resolved Location so a code repeated across rows is
resolved downstream once per pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Location:
    """A resolved location."""

    code: str
    name: str
    id: str | None = None
    type: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


class EnrichmentCache:
    """In-memory map of location code -> Location with hit/miss counters."""

    def __init__(self) -> None:
        self._locations: dict[str, Location] = {}
        self.hits = 0
        self.misses = 0

    def get(self, code: str) -> Location | None:
        location = self._locations.get(code)
        if location is None:
            self.misses += 1
        else:
            self.hits += 1
        return location

    def put(self, code: str, location: Location) -> None:
        self._locations[code] = location

    def __contains__(self, code: str) -> bool:
        return code in self._locations

    def __len__(self) -> int:
        return len(self._locations)

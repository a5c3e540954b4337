"""Discovery filters and advertisement matching."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .advertisement import Advertisement


@dataclass(frozen=True)
class DiscoverFilter:
    """One entry of a ``discover`` filter list.

    Attributes:
        name: Exact local name to match (None = any)
        name_prefix: Required local name prefix (None = any)
        services: Service UUIDs that must all be advertised
    """

    name: str | None = None
    name_prefix: str | None = None
    services: frozenset[str] = field(default_factory=frozenset)

    def matches(self, advertisement: Advertisement) -> bool:
        if self.name and advertisement.local_name != self.name:
            return False
        if self.name_prefix and not advertisement.local_name.startswith(self.name_prefix):
            return False
        return self.services <= advertisement.service_uuids


def matches_any(filters: Iterable[DiscoverFilter], advertisement: Advertisement) -> bool:
    """Check an advertisement against a filter list.

    Filters combine with OR: one matching entry is enough. An empty list
    matches everything. Advertisements without a local name never match.
    """
    if not advertisement.local_name:
        return False

    filters = list(filters)
    if not filters:
        return True
    return any(f.matches(advertisement) for f in filters)

"""Allow-list gatekeeper.

Intersects the live catalog with the operator's ALLOWED_TABLES. The result is
the authoritative set of relations the gateway will touch; nothing outside it
is ever granted, even if the operator names it.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

from inspector.schemas.inspector import RelationDescriptor

if TYPE_CHECKING:
    from inspector.services.catalog import CatalogCache


def parse_allow_list(raw: str | None) -> frozenset[str] | None:
    """Parse a comma-separated allow-list. Blank or unset means unconfigured."""
    if raw is None:
        return None
    names = frozenset(part.strip() for part in raw.split(",") if part.strip())
    return names or None


def compute_allow_list(
    discovered: Iterable[str],
    configured: Collection[str] | None,
) -> list[str]:
    """Return the accessible relation names in discovery order.

    With no configuration every discovered relation is accessible
    (default-open). Configured names the backend does not report are dropped.
    """
    allowed: list[str] = []
    seen: set[str] = set()
    for name in discovered:
        if name in seen:
            continue
        seen.add(name)
        if configured is None or name in configured:
            allowed.append(name)
    return allowed


class AllowListGatekeeper:
    """Exact-match membership test against the published catalog."""

    def __init__(self, catalog: CatalogCache):
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogCache:
        return self._catalog

    def resolve(self, name: str) -> RelationDescriptor | None:
        """Catalog entry for an exact (case-sensitive) name match, if any."""
        snapshot = self._catalog.snapshot
        if snapshot is None:
            return None
        return snapshot.get(name)

    def validate(self, name: str) -> bool:
        return self.resolve(name) is not None

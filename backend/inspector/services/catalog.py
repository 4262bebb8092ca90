"""Catalog cache: the allow-listed relations discovered at startup.

Discovery runs exactly once per process as a background task. Its result is
published as one immutable snapshot, so a reader sees either no catalog or a
complete one. A failed discovery leaves the catalog uninitialized for the life
of the process; operators restart to retry or to pick up new relations.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

import structlog

from inspector.core.errors import NotReadyError
from inspector.core.metrics import (
    catalog_discoveries_total,
    catalog_ready,
    catalog_relations,
)
from inspector.schemas.inspector import RelationDescriptor
from inspector.services.gatekeeper import compute_allow_list

if TYPE_CHECKING:
    from inspector.adapters.base import BackendAdapter

logger = structlog.stdlib.get_logger(__name__)


class CatalogState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class CatalogSnapshot:
    """Allow-listed relations in discovery order, plus an exact-name index."""

    relations: tuple[RelationDescriptor, ...]
    published_at: datetime
    _by_name: Mapping[str, RelationDescriptor] = field(repr=False)

    @classmethod
    def build(cls, relations: Iterable[RelationDescriptor]) -> CatalogSnapshot:
        ordered = tuple(relations)
        return cls(
            relations=ordered,
            published_at=datetime.now(UTC),
            _by_name=MappingProxyType({r.name: r for r in ordered}),
        )

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.relations]

    def get(self, name: str) -> RelationDescriptor | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self.relations)


class CatalogCache:
    """Process-wide holder of the published catalog snapshot.

    Written once by the discovery task, read-only afterwards. The state moves
    from UNINITIALIZED to READY and never back.
    """

    def __init__(self, backend: str = "unknown"):
        self._backend = backend
        self._snapshot: CatalogSnapshot | None = None
        self._last_error: BaseException | None = None
        self._settled = False
        catalog_ready.labels(backend=backend).set(0)

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def state(self) -> CatalogState:
        if self._snapshot is None:
            return CatalogState.UNINITIALIZED
        return CatalogState.READY

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def settled(self) -> bool:
        """True once discovery has finished, successfully or not."""
        return self._settled

    def require(self) -> CatalogSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise NotReadyError()
        return snapshot

    def publish(self, relations: Iterable[RelationDescriptor]) -> CatalogSnapshot:
        snapshot = CatalogSnapshot.build(relations)
        # Single assignment: readers never observe a partially built catalog.
        self._snapshot = snapshot
        self._last_error = None
        self._settled = True
        catalog_ready.labels(backend=self._backend).set(1)
        catalog_relations.labels(backend=self._backend).set(len(snapshot))
        return snapshot

    def record_failure(self, exc: BaseException) -> None:
        self._last_error = exc
        self._settled = True


async def run_discovery(
    adapter: BackendAdapter,
    catalog: CatalogCache,
    configured: frozenset[str] | None,
) -> CatalogSnapshot | None:
    """Discover relations, apply the allow-list and publish the result.

    Failures are logged and recorded on the cache, never retried.
    """
    try:
        discovered = await adapter.list_relations()
    except Exception as exc:
        catalog_discoveries_total.labels(backend=adapter.name, status="failed").inc()
        logger.exception(
            "catalog_discovery_failed",
            backend=adapter.name,
            error=str(exc),
        )
        catalog.record_failure(exc)
        return None

    by_name: dict[str, RelationDescriptor] = {}
    for relation in discovered:
        by_name.setdefault(relation.name, relation)

    allowed = compute_allow_list(by_name, configured)
    snapshot = catalog.publish(by_name[name] for name in allowed)
    catalog_discoveries_total.labels(backend=adapter.name, status="ok").inc()

    if configured is not None:
        missing = sorted(configured.difference(by_name))
        if missing:
            logger.warning(
                "allow_list_entries_not_found",
                backend=adapter.name,
                names=missing,
            )
    logger.info(
        "catalog_discovered",
        backend=adapter.name,
        discovered=len(by_name),
        allowed=snapshot.names,
    )
    return snapshot


def start_discovery(
    adapter: BackendAdapter,
    catalog: CatalogCache,
    configured: frozenset[str] | None,
) -> asyncio.Task[CatalogSnapshot | None]:
    """Schedule the one discovery task for this process."""
    return asyncio.create_task(
        run_discovery(adapter, catalog, configured),
        name=f"catalog-discovery-{adapter.name}",
    )

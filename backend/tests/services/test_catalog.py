"""Catalog cache and discovery tests."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from inspector.core.errors import BackendConnectionError, NotReadyError
from inspector.schemas.inspector import RelationDescriptor, RelationKind
from inspector.services.catalog import (
    CatalogCache,
    CatalogState,
    run_discovery,
    start_discovery,
)


def _tables(*names: str) -> list[RelationDescriptor]:
    return [RelationDescriptor(name=n, kind=RelationKind.TABLE) for n in names]


def _adapter(relations=None, error: Exception | None = None) -> MagicMock:
    adapter = MagicMock()
    adapter.name = "postgres"
    if error is not None:
        adapter.list_relations = AsyncMock(side_effect=error)
    else:
        adapter.list_relations = AsyncMock(return_value=relations or [])
    return adapter


class TestCatalogCache:
    def test_starts_uninitialized(self):
        catalog = CatalogCache()
        assert catalog.state is CatalogState.UNINITIALIZED
        assert catalog.snapshot is None
        assert catalog.settled is False

    def test_require_raises_not_ready(self):
        with pytest.raises(NotReadyError):
            CatalogCache().require()

    def test_publish_makes_ready(self):
        catalog = CatalogCache()
        snapshot = catalog.publish(_tables("users", "orders"))

        assert catalog.state is CatalogState.READY
        assert catalog.require() is snapshot
        assert snapshot.names == ["users", "orders"]
        assert snapshot.get("orders").name == "orders"
        assert snapshot.get("secret") is None
        assert catalog.settled is True

    def test_republish_never_reverts(self):
        catalog = CatalogCache()
        catalog.publish(_tables("users"))
        catalog.publish(_tables("users", "orders"))
        assert catalog.state is CatalogState.READY
        assert catalog.snapshot.names == ["users", "orders"]

    def test_failure_after_ready_keeps_snapshot(self):
        catalog = CatalogCache()
        snapshot = catalog.publish(_tables("users"))
        catalog.record_failure(RuntimeError("boom"))
        assert catalog.state is CatalogState.READY
        assert catalog.snapshot is snapshot

    def test_snapshot_is_immutable(self):
        snapshot = CatalogCache().publish(_tables("users"))
        with pytest.raises(AttributeError):
            snapshot.relations = ()  # type: ignore[misc]
        assert isinstance(snapshot.relations, tuple)

    def test_publish_consumes_generator_before_assignment(self):
        """A reader never sees a half-built snapshot."""
        catalog = CatalogCache()
        observed = []

        def relations():
            for name in ("a", "b"):
                observed.append(catalog.snapshot)
                yield RelationDescriptor(name=name, kind=RelationKind.TABLE)

        catalog.publish(relations())
        assert observed == [None, None]
        assert catalog.snapshot.names == ["a", "b"]


class TestRunDiscovery:
    async def test_publishes_allow_listed_relations(self):
        catalog = CatalogCache()
        adapter = _adapter(_tables("users", "orders", "secret"))

        snapshot = await run_discovery(adapter, catalog, frozenset({"users", "orders"}))

        assert snapshot is not None
        assert catalog.state is CatalogState.READY
        assert catalog.snapshot.names == ["users", "orders"]
        adapter.list_relations.assert_awaited_once()

    async def test_unconfigured_publishes_everything(self):
        catalog = CatalogCache()
        await run_discovery(_adapter(_tables("users", "secret")), catalog, None)
        assert catalog.snapshot.names == ["users", "secret"]

    async def test_no_overlap_publishes_empty_ready_catalog(self):
        catalog = CatalogCache()
        await run_discovery(_adapter(_tables("users")), catalog, frozenset({"ghost"}))
        assert catalog.state is CatalogState.READY
        assert catalog.snapshot.names == []

    async def test_failure_leaves_uninitialized(self):
        catalog = CatalogCache()
        error = BackendConnectionError(
            "ConnectionRefusedError", "refused", backend="postgres", operation="list_relations"
        )

        result = await run_discovery(_adapter(error=error), catalog, None)

        assert result is None
        assert catalog.state is CatalogState.UNINITIALIZED
        assert catalog.last_error is error
        assert catalog.settled is True
        with pytest.raises(NotReadyError):
            catalog.require()

    async def test_failure_is_not_retried(self):
        adapter = _adapter(error=RuntimeError("down"))
        await run_discovery(adapter, CatalogCache(), None)
        assert adapter.list_relations.await_count == 1

    async def test_start_discovery_runs_in_background(self):
        catalog = CatalogCache()
        gate = asyncio.Event()

        async def slow_list():
            await gate.wait()
            return _tables("users")

        adapter = MagicMock()
        adapter.name = "mysql"
        adapter.list_relations = slow_list

        task = start_discovery(adapter, catalog, None)
        await asyncio.sleep(0)
        assert catalog.state is CatalogState.UNINITIALIZED

        gate.set()
        await task
        assert catalog.state is CatalogState.READY
        assert catalog.settled is True
        assert task.get_name() == "catalog-discovery-mysql"

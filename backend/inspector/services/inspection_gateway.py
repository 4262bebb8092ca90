"""Inspection Gateway: the façade behind the /tables and /dbcheck routes.

Every relation-scoped request moves through

    received -> gated -> executing -> responded

and ends in exactly one of ``responded``, ``rejected`` (the gate refused the
name or the catalog is not ready) or ``failed`` (the adapter raised). There
are no retries and no partial results. Adapter failures never touch the
catalog.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog

from inspector.adapters.base import BackendAdapter, RowPage
from inspector.core.errors import BackendError, InspectorError
from inspector.core.metrics import (
    adapter_call_duration_seconds,
    adapter_errors_total,
    fetched_rows,
    gateway_requests_total,
    store_health_check_duration_seconds,
    store_health_status,
)
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor
from inspector.services.catalog import CatalogCache
from inspector.services.gatekeeper import AllowListGatekeeper
from inspector.services.identifiers import CertifiedRelation, IdentifierSafetyLayer
from inspector.services.pagination import normalize

logger = structlog.stdlib.get_logger(__name__)


@dataclass
class HealthStatus:
    healthy: bool
    detail: str


class InspectionGateway:
    """Composes catalog, gatekeeper, identifier certification and one adapter."""

    def __init__(self, adapter: BackendAdapter, catalog: CatalogCache):
        self._adapter = adapter
        self._catalog = catalog
        self._gatekeeper = AllowListGatekeeper(catalog)
        self._identifiers = IdentifierSafetyLayer(self._gatekeeper)

    @property
    def adapter(self) -> BackendAdapter:
        return self._adapter

    @property
    def catalog(self) -> CatalogCache:
        return self._catalog

    @property
    def backend(self) -> str:
        return self._adapter.name

    def list_relations(self) -> list[RelationDescriptor]:
        """Current allow-list snapshot, in discovery order.

        Raises:
            NotReadyError: discovery has not published a catalog.
        """
        with self._request("list_relations"):
            snapshot = self._catalog.require()
            return list(snapshot.relations)

    async def describe_relation(self, name: str) -> list[ColumnDescriptor]:
        with self._request("describe_relation", name):
            relation = self._identifiers.certify(name)
            with self._adapter_call("describe_relation"):
                return await self._adapter.describe_relation(relation)

    async def fetch_rows(
        self,
        name: str,
        raw_limit: Any = None,
        raw_offset: Any = None,
    ) -> RowPage:
        """One bounded page of rows from an allow-listed relation.

        ``raw_limit`` and ``raw_offset`` are taken as supplied by the caller
        and normalized here; malformed values are corrected, not rejected.
        """
        with self._request("fetch_rows", name):
            relation: CertifiedRelation = self._identifiers.certify(name)
            page = normalize(raw_limit, raw_offset)
            with self._adapter_call("fetch_rows"):
                result = await self._adapter.fetch_rows(relation, page)
            fetched_rows.labels(backend=self.backend).observe(len(result))
            logger.debug(
                "rows_fetched",
                relation=relation.name,
                limit=page.limit,
                offset=page.offset,
                rows=len(result),
            )
            return result

    async def health_check(self) -> HealthStatus:
        """Ping the backend. Never consults the catalog."""
        start = time.monotonic()
        try:
            ok = await self._adapter.ping()
        except Exception as exc:
            store_health_check_duration_seconds.labels(store=self.backend).observe(
                time.monotonic() - start
            )
            store_health_status.labels(store=self.backend).set(0)
            detail = exc.detail if isinstance(exc, InspectorError) and exc.detail else str(exc)
            logger.warning("health_check_failed", backend=self.backend, error=detail)
            return HealthStatus(healthy=False, detail=detail)

        store_health_check_duration_seconds.labels(store=self.backend).observe(
            time.monotonic() - start
        )
        store_health_status.labels(store=self.backend).set(1 if ok else 0)
        if not ok:
            return HealthStatus(healthy=False, detail="Ping returned an unexpected reply")
        return HealthStatus(healthy=True, detail="Database connection is healthy")

    @contextmanager
    def _request(self, operation: str, relation: str | None = None) -> Iterator[None]:
        log = logger.bind(operation=operation, relation=relation)
        log.debug("relation_request", state="received")
        try:
            yield
        except BackendError as exc:
            gateway_requests_total.labels(operation=operation, outcome="failed").inc()
            log.warning(
                "relation_request",
                outcome="failed",
                kind=exc.kind,
                error_type=exc.error_type,
                error=exc.detail,
            )
            raise
        except InspectorError as exc:
            gateway_requests_total.labels(operation=operation, outcome="rejected").inc()
            log.info("relation_request", outcome="rejected", kind=exc.kind)
            raise
        except Exception:
            gateway_requests_total.labels(operation=operation, outcome="failed").inc()
            log.exception("relation_request", outcome="failed")
            raise
        gateway_requests_total.labels(operation=operation, outcome="responded").inc()
        log.debug("relation_request", outcome="responded")

    @contextmanager
    def _adapter_call(self, operation: str) -> Iterator[None]:
        # Reached only after certification: the request is gated.
        logger.debug("relation_request", operation=operation, state="executing")
        start = time.perf_counter()
        try:
            yield
        except BackendError as exc:
            adapter_errors_total.labels(
                backend=self.backend, operation=operation, kind=exc.kind
            ).inc()
            raise
        finally:
            adapter_call_duration_seconds.labels(
                backend=self.backend, operation=operation
            ).observe(time.perf_counter() - start)

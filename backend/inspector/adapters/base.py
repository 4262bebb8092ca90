"""Backend adapter contract.

Every storage family implements the same capability set. The gateway and the
catalog are written once against this protocol; adapters share helpers by
composition, not by subclassing.
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Protocol, runtime_checkable

from inspector.core.errors import BackendConnectionError, BackendError, InspectorError
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest


@dataclass
class RowPage:
    """Rows as returned by the backend, uninterpreted."""

    rows: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


@runtime_checkable
class BackendAdapter(Protocol):
    """Read-only introspection and paging over one backend."""

    name: str
    relation_kind: RelationKind

    async def connect(self) -> Any:
        """Create the pooled handle on first use, return the same one afterwards."""

    async def list_relations(self) -> list[RelationDescriptor]:
        """Relations visible to the configured credentials, backend order."""

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        """Column metadata, in declaration order where the backend has one."""

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        """One bounded page of rows."""

    async def ping(self) -> bool:
        """Lightweight liveness probe."""

    async def close(self) -> None:
        """Release the pool. Safe to call when never connected."""


@contextmanager
def backend_errors(
    backend: str,
    operation: str,
    connection_errors: tuple[type[BaseException], ...] = (),
    is_connection_error: Callable[[BaseException], bool] | None = None,
) -> Iterator[None]:
    """Translate driver exceptions into BackendError / BackendConnectionError.

    ``connection_errors`` and ``is_connection_error`` let a driver flag which
    of its exceptions mean the backend was unreachable.
    """
    try:
        yield
    except InspectorError:
        raise
    except (OSError, TimeoutError, *connection_errors) as exc:
        raise BackendConnectionError(
            type(exc).__name__, str(exc), backend=backend, operation=operation
        ) from exc
    except Exception as exc:
        if is_connection_error is not None and is_connection_error(exc):
            raise BackendConnectionError(
                type(exc).__name__, str(exc), backend=backend, operation=operation
            ) from exc
        raise BackendError(
            type(exc).__name__, str(exc), backend=backend, operation=operation
        ) from exc


def to_jsonable(value: Any) -> Any:
    """Render driver values the JSON encoder cannot take as JSON-safe ones.

    Binary payloads (BLOB, bytea, varbinary, BSON Binary) become base64
    text. Scalars the response model already serializes pass through;
    anything else (Decimal, UUID, ObjectId, ...) is rendered with ``str``.
    """
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if value is None or isinstance(value, (bool, int, float, str, date, time)):
        return value
    return str(value)


def jsonable_page(rows: Iterable[Mapping[str, Any]]) -> RowPage:
    return RowPage(rows=[to_jsonable(dict(row)) for row in rows])

"""SQLite adapter via SQLAlchemy (pysqlite).

The database file is opened with a read-only URI, so a missing file is a
connection failure rather than a silently created empty database.
"""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar

import structlog
from sqlalchemy import URL, create_engine
from sqlalchemy.exc import OperationalError

from inspector.adapters.base import RowPage, backend_errors, jsonable_page
from inspector.adapters.engine import BlockingEngine
from inspector.adapters.sql import as_text, page_query
from inspector.core.config import BackendSettings
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation, quote_relation
from inspector.services.pagination import PageRequest

logger = structlog.stdlib.get_logger(__name__)

LIST_TABLES = (
    "SELECT name FROM sqlite_master "
    "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'"
)


def _is_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, OperationalError) and "unable to open database" in str(exc)


class SQLiteAdapter:
    name: ClassVar[str] = "sqlite"
    relation_kind: ClassVar[RelationKind] = RelationKind.TABLE

    def __init__(self, path: str, pool_size: int = 10):
        # resolve absolute path so the URI does not depend on the working directory
        self.path = Path(path).resolve()
        self.pool_size = pool_size
        self._engine: BlockingEngine | None = None

    async def connect(self) -> BlockingEngine:
        # No await between the check and the assignment: one engine per adapter.
        if self._engine is None:
            url = URL.create(
                "sqlite+pysqlite",
                database=f"file:{self.path}",
                query={"mode": "ro", "uri": "true"},
            )
            engine = create_engine(
                url,
                pool_size=self.pool_size,
                max_overflow=0,
                connect_args={"check_same_thread": False},
            )
            self._engine = BlockingEngine(engine)
            logger.info("sqlite_engine_created", path=str(self.path))
        return self._engine

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    async def list_relations(self) -> list[RelationDescriptor]:
        engine = await self.connect()
        with backend_errors(self.name, "list_relations", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all(LIST_TABLES)
        return [RelationDescriptor(name=row["name"], kind=self.relation_kind) for row in rows]

    async def _table_info(self, relation: CertifiedRelation, operation: str) -> list[dict]:
        # PRAGMA arguments cannot be bound; the certified name is quoted instead.
        statement = f"PRAGMA table_info({quote_relation(relation, 'sqlite')})"
        engine = await self.connect()
        with backend_errors(self.name, operation, is_connection_error=_is_connection_error):
            return await engine.fetch_all(statement)

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        rows = await self._table_info(relation, "describe_relation")
        return [
            ColumnDescriptor(
                field=row["name"],
                type=row["type"] or "",
                nullable=not row["notnull"],
                default=as_text(row["dflt_value"]),
                is_key=bool(row["pk"]),
            )
            for row in rows
        ]

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        # pk holds the column's 1-based position in the primary key, 0 outside it
        columns = sorted(
            (row for row in await self._table_info(relation, "fetch_rows") if row["pk"]),
            key=lambda row: row["pk"],
        )
        query = page_query(
            relation, page, dialect="sqlite", key_columns=[row["name"] for row in columns]
        )
        engine = await self.connect()
        with backend_errors(self.name, "fetch_rows", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all(query)
        return jsonable_page(rows)

    async def ping(self) -> bool:
        engine = await self.connect()
        with backend_errors(self.name, "ping", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all("SELECT 1 AS ok")
        return bool(rows) and rows[0]["ok"] == 1

    @classmethod
    def from_settings(cls, backend: BackendSettings) -> SQLiteAdapter:
        return cls(path=backend.db_file, pool_size=backend.db_pool_size)

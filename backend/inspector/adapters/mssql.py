"""Microsoft SQL Server adapter via SQLAlchemy (pymssql).

Catalog and column metadata come from INFORMATION_SCHEMA, scoped to the
login's default schema. Paging uses ``OFFSET .. ROWS FETCH FIRST .. ROWS ONLY``
over the primary key, or over position 1 when the table has none.
"""

from __future__ import annotations

from typing import ClassVar

import structlog
from sqlalchemy import URL, create_engine
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError

from inspector.adapters.base import RowPage, backend_errors, jsonable_page
from inspector.adapters.engine import BlockingEngine
from inspector.adapters.sql import as_text, page_query, yes_no
from inspector.core.config import BackendSettings
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest

logger = structlog.stdlib.get_logger(__name__)

# FreeTDS messages for an unreachable server or rejected login
_CONNECTION_MARKERS = (
    "Unable to connect",
    "Adaptive Server is unavailable",
    "Adaptive Server connection failed",
    "Login failed",
)

LIST_TABLES = (
    "SELECT TABLE_NAME AS name FROM INFORMATION_SCHEMA.TABLES "
    "WHERE TABLE_TYPE = 'BASE TABLE' AND TABLE_SCHEMA = SCHEMA_NAME()"
)

DESCRIBE_TABLE = """
SELECT c.COLUMN_NAME AS field, c.DATA_TYPE AS type, c.IS_NULLABLE AS nullable,
       c.COLUMN_DEFAULT AS default_value,
       CASE WHEN pk.COLUMN_NAME IS NULL THEN 0 ELSE 1 END AS is_key
FROM INFORMATION_SCHEMA.COLUMNS c
LEFT JOIN (
    SELECT k.TABLE_SCHEMA, k.TABLE_NAME, k.COLUMN_NAME
    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE k
      ON k.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
     AND k.TABLE_SCHEMA = tc.TABLE_SCHEMA
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
) pk
  ON pk.TABLE_SCHEMA = c.TABLE_SCHEMA
 AND pk.TABLE_NAME = c.TABLE_NAME
 AND pk.COLUMN_NAME = c.COLUMN_NAME
WHERE c.TABLE_SCHEMA = SCHEMA_NAME() AND c.TABLE_NAME = %(table)s
ORDER BY c.ORDINAL_POSITION
"""

PRIMARY_KEY = """
SELECT k.COLUMN_NAME AS name
FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE k
  ON k.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
 AND k.TABLE_SCHEMA = tc.TABLE_SCHEMA
WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
  AND tc.TABLE_SCHEMA = SCHEMA_NAME() AND tc.TABLE_NAME = %(table)s
ORDER BY k.ORDINAL_POSITION
"""


def _is_connection_error(exc: BaseException) -> bool:
    if isinstance(exc, (InterfaceError, DisconnectionError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, OperationalError) and any(
        marker in str(exc) for marker in _CONNECTION_MARKERS
    )


class MSSQLAdapter:
    name: ClassVar[str] = "mssql"
    relation_kind: ClassVar[RelationKind] = RelationKind.TABLE

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        pool_size: int = 10,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.pool_size = pool_size
        self._engine: BlockingEngine | None = None

    def url(self) -> URL:
        return URL.create(
            "mssql+pymssql",
            username=self.user or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database or None,
        )

    async def connect(self) -> BlockingEngine:
        if self._engine is None:
            engine = create_engine(self.url(), pool_size=self.pool_size, max_overflow=0)
            self._engine = BlockingEngine(engine)
            logger.info("mssql_engine_created", host=self.host, database=self.database)
        return self._engine

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("mssql_engine_disposed")

    async def list_relations(self) -> list[RelationDescriptor]:
        engine = await self.connect()
        with backend_errors(self.name, "list_relations", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all(LIST_TABLES)
        return [RelationDescriptor(name=row["name"], kind=self.relation_kind) for row in rows]

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        engine = await self.connect()
        with backend_errors(self.name, "describe_relation", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all(DESCRIBE_TABLE, {"table": relation.name})
        return [
            ColumnDescriptor(
                field=row["field"],
                type=row["type"],
                nullable=yes_no(row["nullable"]),
                default=as_text(row["default_value"]),
                is_key=bool(row["is_key"]),
            )
            for row in rows
        ]

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        engine = await self.connect()
        with backend_errors(self.name, "fetch_rows", is_connection_error=_is_connection_error):
            keys = await engine.fetch_all(PRIMARY_KEY, {"table": relation.name})
            query = page_query(
                relation, page, dialect="tsql", key_columns=[row["name"] for row in keys]
            )
            rows = await engine.fetch_all(query)
        return jsonable_page(rows)

    async def ping(self) -> bool:
        engine = await self.connect()
        with backend_errors(self.name, "ping", is_connection_error=_is_connection_error):
            rows = await engine.fetch_all("SELECT 1 AS ok")
        return bool(rows) and rows[0]["ok"] == 1

    @classmethod
    def from_settings(cls, backend: BackendSettings) -> MSSQLAdapter:
        return cls(
            host=backend.db_host,
            port=backend.port or 1433,
            database=backend.db_name,
            user=backend.db_user,
            password=backend.db_password,
            pool_size=backend.db_pool_size,
        )

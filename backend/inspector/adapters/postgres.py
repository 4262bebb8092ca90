"""PostgreSQL adapter via asyncpg.

Read-only; nothing here writes to PostgreSQL. Tables come from
pg_catalog for one schema; columns from information_schema.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import ClassVar

import asyncpg  # type: ignore[import-untyped]
import structlog

from inspector.adapters.base import RowPage, backend_errors, jsonable_page
from inspector.adapters.sql import as_text, page_query, yes_no
from inspector.core.config import BackendSettings
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest

logger = structlog.stdlib.get_logger(__name__)

_CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.InterfaceError,
    asyncpg.InvalidAuthorizationSpecificationError,
    asyncpg.InvalidCatalogNameError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
)

LIST_TABLES = "SELECT tablename FROM pg_catalog.pg_tables WHERE schemaname = $1"

DESCRIBE_TABLE = """
SELECT c.column_name, c.data_type, c.is_nullable, c.column_default,
       EXISTS (
           SELECT 1
           FROM information_schema.table_constraints tc
           JOIN information_schema.key_column_usage k
             ON k.constraint_name = tc.constraint_name
            AND k.table_schema = tc.table_schema
            AND k.table_name = tc.table_name
           WHERE tc.constraint_type = 'PRIMARY KEY'
             AND tc.table_schema = c.table_schema
             AND tc.table_name = c.table_name
             AND k.column_name = c.column_name
       ) AS is_key
FROM information_schema.columns c
WHERE c.table_schema = $1 AND c.table_name = $2
ORDER BY c.ordinal_position
"""

PRIMARY_KEY = """
SELECT k.column_name
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage k
  ON k.constraint_name = tc.constraint_name
 AND k.table_schema = tc.table_schema
 AND k.table_name = tc.table_name
WHERE tc.constraint_type = 'PRIMARY KEY'
  AND tc.table_schema = $1 AND tc.table_name = $2
ORDER BY k.ordinal_position
"""


@dataclass
class PostgresAdapter:
    """Async PostgreSQL adapter over an asyncpg pool bounded by ``pool_size``."""

    name: ClassVar[str] = "postgres"
    relation_kind: ClassVar[RelationKind] = RelationKind.TABLE

    host: str
    port: int
    database: str
    user: str
    password: str
    schema: str = "public"
    pool_size: int = 10

    _pool: asyncpg.Pool | None = field(default=None, init=False, repr=False)
    _pool_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def connect(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                with backend_errors(self.name, "connect", _CONNECTION_ERRORS):
                    self._pool = await asyncpg.create_pool(
                        host=self.host,
                        port=self.port,
                        database=self.database,
                        user=self.user,
                        password=self.password,
                        min_size=1,
                        max_size=self.pool_size,
                    )
                logger.info("postgres_pool_created", host=self.host, database=self.database)
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_pool_closed")

    async def list_relations(self) -> list[RelationDescriptor]:
        pool = await self.connect()
        with backend_errors(self.name, "list_relations", _CONNECTION_ERRORS):
            async with pool.acquire() as conn:
                rows = await conn.fetch(LIST_TABLES, self.schema)
        return [
            RelationDescriptor(name=row["tablename"], kind=self.relation_kind) for row in rows
        ]

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        pool = await self.connect()
        with backend_errors(self.name, "describe_relation", _CONNECTION_ERRORS):
            async with pool.acquire() as conn:
                rows = await conn.fetch(DESCRIBE_TABLE, self.schema, relation.name)
        return [
            ColumnDescriptor(
                field=row["column_name"],
                type=row["data_type"],
                nullable=yes_no(row["is_nullable"]),
                default=as_text(row["column_default"]),
                is_key=bool(row["is_key"]),
            )
            for row in rows
        ]

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        pool = await self.connect()
        with backend_errors(self.name, "fetch_rows", _CONNECTION_ERRORS):
            async with pool.acquire() as conn:
                keys = await conn.fetch(PRIMARY_KEY, self.schema, relation.name)
                query = page_query(
                    relation,
                    page,
                    dialect="postgres",
                    key_columns=[row["column_name"] for row in keys],
                    schema=self.schema,
                )
                rows = await conn.fetch(query)
        return jsonable_page(rows)

    async def ping(self) -> bool:
        pool = await self.connect()
        with backend_errors(self.name, "ping", _CONNECTION_ERRORS):
            async with pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1

    @classmethod
    def from_settings(cls, backend: BackendSettings) -> PostgresAdapter:
        return cls(
            host=backend.db_host,
            port=backend.port or 5432,
            database=backend.db_name,
            user=backend.db_user,
            password=backend.db_password,
            schema=backend.db_schema,
            pool_size=backend.db_pool_size,
        )

"""MySQL adapter via aiomysql.

Read-only. Discovery and column metadata come from information_schema for
the connection's current database.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, ClassVar

import aiomysql  # type: ignore[import-untyped]
import structlog

from inspector.adapters.base import RowPage, backend_errors, jsonable_page
from inspector.adapters.sql import as_text, page_query, yes_no
from inspector.core.config import BackendSettings
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest

logger = structlog.stdlib.get_logger(__name__)

# 2003: can't connect, 2006: server gone away, 2013: lost connection, 1045: access denied
_CONNECTION_ERROR_CODES = {1045, 2003, 2006, 2013}

LIST_TABLES = (
    "SELECT table_name AS name "
    "FROM information_schema.tables "
    "WHERE table_schema = DATABASE() AND table_type = 'BASE TABLE'"
)

DESCRIBE_TABLE = (
    "SELECT column_name AS field, column_type AS type, is_nullable AS nullable, "
    "column_default AS default_value, column_key AS column_key "
    "FROM information_schema.columns "
    "WHERE table_schema = DATABASE() AND table_name = %s "
    "ORDER BY ordinal_position"
)

PRIMARY_KEY = (
    "SELECT column_name AS name FROM information_schema.key_column_usage "
    "WHERE table_schema = DATABASE() AND table_name = %s AND constraint_name = 'PRIMARY' "
    "ORDER BY ordinal_position"
)


def _is_connection_error(exc: BaseException) -> bool:
    return (
        isinstance(exc, aiomysql.OperationalError)
        and bool(exc.args)
        and exc.args[0] in _CONNECTION_ERROR_CODES
    )


@dataclass
class MySQLAdapter:
    """Async MySQL adapter over an aiomysql pool bounded by ``pool_size``."""

    name: ClassVar[str] = "mysql"
    relation_kind: ClassVar[RelationKind] = RelationKind.TABLE

    host: str
    port: int
    database: str
    user: str
    password: str
    pool_size: int = 10

    _pool: aiomysql.Pool | None = field(default=None, init=False, repr=False)
    _pool_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def connect(self) -> aiomysql.Pool:
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is None:
                with backend_errors(self.name, "connect", (aiomysql.OperationalError,)):
                    self._pool = await aiomysql.create_pool(
                        host=self.host,
                        port=self.port,
                        db=self.database,
                        user=self.user,
                        password=self.password,
                        minsize=1,
                        maxsize=self.pool_size,
                        autocommit=True,
                    )
                logger.info("mysql_pool_created", host=self.host, database=self.database)
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None
            logger.info("mysql_pool_closed")

    async def _fetch_all(self, operation: str, query: str, args: Any = None) -> list[dict]:
        pool = await self.connect()
        with backend_errors(self.name, operation, is_connection_error=_is_connection_error):
            async with pool.acquire() as conn:
                async with conn.cursor(aiomysql.DictCursor) as cur:
                    await cur.execute(query, args)
                    return list(await cur.fetchall())

    async def list_relations(self) -> list[RelationDescriptor]:
        rows = await self._fetch_all("list_relations", LIST_TABLES)
        return [RelationDescriptor(name=row["name"], kind=self.relation_kind) for row in rows]

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        rows = await self._fetch_all("describe_relation", DESCRIBE_TABLE, (relation.name,))
        return [
            ColumnDescriptor(
                field=row["field"],
                type=as_text(row["type"]) or "",
                nullable=yes_no(row["nullable"]),
                default=as_text(row["default_value"]),
                is_key=row["column_key"] == "PRI",
            )
            for row in rows
        ]

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        keys = await self._fetch_all("fetch_rows", PRIMARY_KEY, (relation.name,))
        query = page_query(
            relation, page, dialect="mysql", key_columns=[row["name"] for row in keys]
        )
        rows = await self._fetch_all("fetch_rows", query)
        return jsonable_page(rows)

    async def ping(self) -> bool:
        pool = await self.connect()
        with backend_errors(self.name, "ping", (aiomysql.OperationalError,)):
            async with pool.acquire() as conn:
                await conn.ping(reconnect=False)
        return True

    @classmethod
    def from_settings(cls, backend: BackendSettings) -> MySQLAdapter:
        return cls(
            host=backend.db_host,
            port=backend.port or 3306,
            database=backend.db_name,
            user=backend.db_user,
            password=backend.db_password,
            pool_size=backend.db_pool_size,
        )

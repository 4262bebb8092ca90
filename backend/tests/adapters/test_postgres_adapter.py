"""PostgreSQL adapter tests. asyncpg is mocked at the pool boundary."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, call, patch

import asyncpg
import pytest

from inspector.adapters.postgres import DESCRIBE_TABLE, LIST_TABLES, PRIMARY_KEY, PostgresAdapter
from inspector.core.config import BackendSettings
from inspector.core.errors import BackendConnectionError, BackendError
from inspector.schemas.inspector import RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest

USERS = CertifiedRelation(name="users", kind=RelationKind.TABLE)


@pytest.fixture
def conn():
    conn = MagicMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=1)
    return conn


@pytest.fixture
def pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)
    pool.close = AsyncMock()
    return pool


@pytest.fixture
def create_pool(pool):
    with patch("inspector.adapters.postgres.asyncpg.create_pool", AsyncMock(return_value=pool)) as m:
        yield m


@pytest.fixture
def adapter() -> PostgresAdapter:
    return PostgresAdapter(
        host="db", port=5432, database="app", user="reader", password="pw", pool_size=4
    )


async def test_pool_is_created_once_and_bounded(adapter, create_pool, pool):
    assert await adapter.connect() is pool
    assert await adapter.connect() is pool
    create_pool.assert_awaited_once()
    assert create_pool.await_args.kwargs["max_size"] == 4


async def test_list_relations_uses_configured_schema(adapter, create_pool, conn):
    adapter.schema = "reporting"
    conn.fetch = AsyncMock(return_value=[{"tablename": "users"}, {"tablename": "orders"}])

    relations = await adapter.list_relations()

    assert [r.name for r in relations] == ["users", "orders"]
    conn.fetch.assert_awaited_once_with(LIST_TABLES, "reporting")


async def test_describe_relation_binds_name(adapter, create_pool, conn):
    conn.fetch = AsyncMock(
        return_value=[
            {
                "column_name": "id",
                "data_type": "integer",
                "is_nullable": "NO",
                "column_default": "nextval('users_id_seq'::regclass)",
                "is_key": True,
            },
            {
                "column_name": "email",
                "data_type": "text",
                "is_nullable": "YES",
                "column_default": None,
                "is_key": False,
            },
        ]
    )

    columns = await adapter.describe_relation(USERS)

    conn.fetch.assert_awaited_once_with(DESCRIBE_TABLE, "public", "users")
    assert columns[0].model_dump(by_alias=True) == {
        "field": "id",
        "type": "integer",
        "nullable": False,
        "default": "nextval('users_id_seq'::regclass)",
        "isKey": True,
    }
    assert columns[1].nullable is True
    assert columns[1].default is None


async def test_fetch_rows_orders_by_primary_key(adapter, create_pool, conn):
    conn.fetch = AsyncMock(side_effect=[[{"column_name": "id"}], [{"id": 1, "doc": {"a": 1}}]])

    page = await adapter.fetch_rows(USERS, PageRequest(limit=10, offset=30))

    assert conn.fetch.await_args_list == [
        call(PRIMARY_KEY, "public", "users"),
        call('SELECT * FROM "public"."users" ORDER BY "id" LIMIT 10 OFFSET 30'),
    ]
    assert page.rows == [{"id": 1, "doc": {"a": 1}}]


async def test_fetch_rows_without_primary_key_orders_by_position(adapter, create_pool, conn):
    conn.fetch = AsyncMock(side_effect=[[], [{"payload": "{}"}]])

    await adapter.fetch_rows(USERS, PageRequest(limit=10, offset=0))

    assert conn.fetch.await_args_list[1] == call(
        'SELECT * FROM "public"."users" ORDER BY 1 LIMIT 10 OFFSET 0'
    )


async def test_fetch_rows_renders_bytea_and_numeric(adapter, create_pool, conn):
    row = {"id": 1, "data": b"\x89PNG\xff\x00", "price": Decimal("9.99")}
    conn.fetch = AsyncMock(side_effect=[[{"column_name": "id"}], [row]])

    page = await adapter.fetch_rows(USERS, PageRequest(limit=1, offset=0))

    assert page.rows == [{"id": 1, "data": "iVBOR/8A", "price": "9.99"}]


async def test_query_error_is_backend_error(adapter, create_pool, conn):
    conn.fetch = AsyncMock(side_effect=asyncpg.UndefinedTableError('relation "users" does not exist'))

    with pytest.raises(BackendError) as exc_info:
        await adapter.fetch_rows(USERS, PageRequest(limit=1, offset=0))

    assert exc_info.value.kind == "backend_error"
    assert exc_info.value.error_type == "UndefinedTableError"
    assert exc_info.value.operation == "fetch_rows"


async def test_unreachable_server_is_connection_error(adapter):
    with patch(
        "inspector.adapters.postgres.asyncpg.create_pool",
        AsyncMock(side_effect=ConnectionRefusedError(111, "Connection refused")),
    ):
        with pytest.raises(BackendConnectionError) as exc_info:
            await adapter.ping()
    assert exc_info.value.status_code == 500
    assert exc_info.value.kind == "connection_error"


async def test_ping(adapter, create_pool, conn):
    assert await adapter.ping() is True
    conn.fetchval.assert_awaited_once_with("SELECT 1")


async def test_close_releases_pool(adapter, create_pool, pool):
    await adapter.connect()
    await adapter.close()
    pool.close.assert_awaited_once()


def test_from_settings_defaults_port():
    adapter = PostgresAdapter.from_settings(
        BackendSettings(db_backend="postgres", db_host="pg", db_name="app", db_schema="s1")
    )
    assert (adapter.host, adapter.port, adapter.database, adapter.schema) == ("pg", 5432, "app", "s1")

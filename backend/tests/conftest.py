"""Shared test fixtures.

A real SQLite file drives the end-to-end tests. Network backends
(PostgreSQL, MySQL, SQL Server, MongoDB) are mocked at the driver boundary;
tests never require running instances of these services.
"""

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, text

from inspector.adapters.sqlite import SQLiteAdapter
from inspector.api.deps import get_gateway
from inspector.main import app
from inspector.services.catalog import CatalogCache, run_discovery
from inspector.services.gatekeeper import parse_allow_list
from inspector.services.inspection_gateway import InspectionGateway

USER_ROWS = 600


def seed_database(path: Path) -> None:
    """users (600 rows), orders and secret, created in that order."""
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE users ("
                "id INTEGER PRIMARY KEY, "
                "name TEXT NOT NULL, "
                "email TEXT DEFAULT 'unknown')"
            )
        )
        conn.execute(
            text("CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL)")
        )
        conn.execute(text("CREATE TABLE secret (id INTEGER PRIMARY KEY, token TEXT)"))
        conn.execute(
            text("INSERT INTO users (id, name, email) VALUES (:id, :name, :email)"),
            [
                {"id": i, "name": f"user-{i}", "email": f"user{i}@example.com"}
                for i in range(1, USER_ROWS + 1)
            ],
        )
        conn.execute(
            text("INSERT INTO orders (id, user_id, total) VALUES (:id, :user_id, :total)"),
            [{"id": i, "user_id": i, "total": i * 1.5} for i in range(1, 4)],
        )
        conn.execute(text("INSERT INTO secret (id, token) VALUES (1, 's3cr3t')"))
    engine.dispose()


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    path = tmp_path / "inspector.db"
    seed_database(path)
    return path


@pytest.fixture
async def sqlite_adapter(sqlite_path: Path):
    adapter = SQLiteAdapter(str(sqlite_path), pool_size=2)
    yield adapter
    await adapter.close()


@pytest.fixture
def allow_list() -> frozenset[str] | None:
    """Override in a module to change the configured ALLOWED_TABLES."""
    return parse_allow_list("users,orders")


@pytest.fixture
async def gateway(sqlite_adapter: SQLiteAdapter, allow_list) -> InspectionGateway:
    """Gateway over the seeded SQLite file with discovery already published."""
    catalog = CatalogCache(backend=sqlite_adapter.name)
    await run_discovery(sqlite_adapter, catalog, allow_list)
    return InspectionGateway(sqlite_adapter, catalog)


@pytest.fixture
async def client(gateway: InspectionGateway) -> AsyncClient:
    """httpx AsyncClient wired to the app, with the gateway overridden.

    ASGITransport does not run the lifespan, so the gateway never comes
    from settings in tests.
    """
    app.dependency_overrides[get_gateway] = lambda: gateway
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.pop(get_gateway, None)

"""Build the one adapter this process serves, from ``DB_BACKEND``."""

from inspector.adapters.base import BackendAdapter
from inspector.adapters.mongodb import MongoDBAdapter
from inspector.adapters.mssql import MSSQLAdapter
from inspector.adapters.mysql import MySQLAdapter
from inspector.adapters.postgres import PostgresAdapter
from inspector.adapters.sqlite import SQLiteAdapter
from inspector.core.config import BackendSettings

ADAPTERS: dict[str, type] = {
    "postgres": PostgresAdapter,
    "mysql": MySQLAdapter,
    "sqlite": SQLiteAdapter,
    "mssql": MSSQLAdapter,
    "mongodb": MongoDBAdapter,
}


def build_adapter(backend: BackendSettings) -> BackendAdapter:
    try:
        adapter_cls = ADAPTERS[backend.db_backend]
    except KeyError:
        raise ValueError(f"Unsupported DB_BACKEND: {backend.db_backend!r}") from None
    return adapter_cls.from_settings(backend)

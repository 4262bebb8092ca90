"""SQLAlchemy engine runner for drivers without an asyncio API.

pysqlite and pymssql block, so statements run in Starlette's thread pool.
The engine's QueuePool (``max_overflow=0``) bounds concurrent connections;
a caller past the bound waits on the pool checkout.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine
from starlette.concurrency import run_in_threadpool


class BlockingEngine:
    def __init__(self, engine: Engine):
        self._engine = engine

    async def fetch_all(self, statement: str, params: Any = None) -> list[dict[str, Any]]:
        return await run_in_threadpool(self._fetch_all, statement, params)

    def _fetch_all(self, statement: str, params: Any) -> list[dict[str, Any]]:
        # exec_driver_sql: the statement is final SQL text, no bind-param parsing.
        with self._engine.connect() as conn:
            if params is None:
                result = conn.exec_driver_sql(statement)
            else:
                result = conn.exec_driver_sql(statement, params)
            return [dict(row) for row in result.mappings()]

    def dispose(self) -> None:
        self._engine.dispose()

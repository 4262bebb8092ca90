"""MongoDB adapter via pymongo's asyncio client.

Collections have no declared schema: ``describe_relation`` samples a single
document and reports each top-level key with the runtime type of its value.
That is a snapshot of one document, not a guarantee about the collection.

Pages are sorted by ``_id`` ascending so skip/limit is stable across
requests; natural order is not guaranteed by the server.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar
from urllib.parse import quote_plus

import structlog
from bson import Binary, ObjectId
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import ConnectionFailure, OperationFailure

from inspector.adapters.base import RowPage, backend_errors, to_jsonable
from inspector.core.config import BackendSettings
from inspector.schemas.inspector import ColumnDescriptor, RelationDescriptor, RelationKind
from inspector.services.identifiers import CertifiedRelation
from inspector.services.pagination import PageRequest

logger = structlog.stdlib.get_logger(__name__)

# 18: AuthenticationFailed
_AUTH_FAILED = 18


def _is_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, OperationFailure) and exc.code == _AUTH_FAILED


def build_uri(host: str, port: int, user: str = "", password: str = "") -> str:
    """Connection string with credentials only when both are configured."""
    if user and password:
        return f"mongodb://{quote_plus(user)}:{quote_plus(password)}@{host}:{port}"
    return f"mongodb://{host}:{port}"


def value_type(value: Any) -> str:
    """JavaScript-flavoured type name of a sampled BSON value."""
    if value is None:
        return "null"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, ObjectId):
        return "objectId"
    if isinstance(value, datetime):
        return "date"
    if isinstance(value, (bytes, Binary)):
        return "binary"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


class MongoDBAdapter:
    name: ClassVar[str] = "mongodb"
    relation_kind: ClassVar[RelationKind] = RelationKind.COLLECTION

    def __init__(self, uri: str, database: str = "", pool_size: int = 10):
        self.uri = uri
        self.database = database
        self.pool_size = pool_size
        self._client: AsyncMongoClient | None = None

    async def connect(self) -> AsyncMongoClient:
        # The client connects lazily; building it performs no I/O.
        if self._client is None:
            with backend_errors(self.name, "connect", (ConnectionFailure,)):
                self._client = AsyncMongoClient(self.uri, maxPoolSize=self.pool_size)
            logger.info("mongodb_client_created", database=self.database)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("mongodb_client_closed")

    async def _db(self):
        client = await self.connect()
        if self.database:
            return client[self.database]
        # Fall back to the database named in DB_URI
        return client.get_default_database()

    async def list_relations(self) -> list[RelationDescriptor]:
        with backend_errors(
            self.name, "list_relations", (ConnectionFailure,), _is_connection_error
        ):
            db = await self._db()
            names = await db.list_collection_names()
        return [RelationDescriptor(name=name, kind=self.relation_kind) for name in names]

    async def describe_relation(self, relation: CertifiedRelation) -> list[ColumnDescriptor]:
        with backend_errors(
            self.name, "describe_relation", (ConnectionFailure,), _is_connection_error
        ):
            db = await self._db()
            document = await db[relation.name].find_one()
        if document is None:
            return []
        return [ColumnDescriptor(field=key, type=value_type(value)) for key, value in document.items()]

    async def fetch_rows(self, relation: CertifiedRelation, page: PageRequest) -> RowPage:
        with backend_errors(self.name, "fetch_rows", (ConnectionFailure,), _is_connection_error):
            db = await self._db()
            cursor = (
                db[relation.name]
                .find()
                .sort("_id", ASCENDING)
                .skip(page.offset)
                .limit(page.limit)
            )
            documents = await cursor.to_list(length=page.limit)
        return RowPage(rows=[to_jsonable(document) for document in documents])

    async def ping(self) -> bool:
        client = await self.connect()
        with backend_errors(self.name, "ping", (ConnectionFailure,), _is_connection_error):
            reply = await client.admin.command("ping")
        return bool(reply.get("ok"))

    @classmethod
    def from_settings(cls, backend: BackendSettings) -> MongoDBAdapter:
        uri = backend.db_uri or build_uri(
            backend.db_host,
            backend.port or 27017,
            backend.db_user,
            backend.db_password,
        )
        return cls(uri=uri, database=backend.db_name, pool_size=backend.db_pool_size)

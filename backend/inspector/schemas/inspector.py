"""Pydantic schemas for relation discovery and the /tables endpoints."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RelationKind(str, Enum):
    TABLE = "table"
    COLLECTION = "collection"


class RelationDescriptor(BaseModel):
    """One discovered relation. Immutable once an adapter produced it."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: RelationKind


class ColumnDescriptor(BaseModel):
    """Uniform column description.

    Relational adapters fill every field from declared metadata. The document
    adapter infers ``type`` from one sampled value and leaves the rest empty.
    """

    field: str
    type: str
    nullable: bool | None = None
    default: str | None = None
    is_key: bool | None = Field(default=None, serialization_alias="isKey")


class TablesResponse(BaseModel):
    tables: list[str]


class ColumnsResponse(BaseModel):
    columns: list[ColumnDescriptor]


class LinesResponse(BaseModel):
    lines: list[dict[str, Any]]


class DbCheckResponse(BaseModel):
    status: str  # "success" | "error"
    message: str
    backend: str
    error: str | None = None


class ErrorResponse(BaseModel):
    error: str
    kind: str
    details: str | None = None

"""Relation discovery and bounded read endpoints.

Names in the path are untrusted; the gateway certifies them against the
published allow-list before any backend call. ``limit`` and ``offset`` are
accepted as raw strings and normalized, so malformed values never yield 422.
"""

from fastapi import APIRouter, Depends, Query

from inspector.api.deps import get_gateway
from inspector.schemas.inspector import ColumnsResponse, LinesResponse, TablesResponse
from inspector.services.inspection_gateway import InspectionGateway

router = APIRouter()


@router.get("", response_model=TablesResponse)
async def list_tables(gateway: InspectionGateway = Depends(get_gateway)):
    relations = gateway.list_relations()
    return TablesResponse(tables=[r.name for r in relations])


@router.get("/{table_name}/columns", response_model=ColumnsResponse)
async def get_columns(
    table_name: str,
    gateway: InspectionGateway = Depends(get_gateway),
):
    columns = await gateway.describe_relation(table_name)
    return ColumnsResponse(columns=columns)


@router.get("/{table_name}/lines", response_model=LinesResponse)
async def get_lines(
    table_name: str,
    limit: str | None = Query(default=None, description="Page size, clamped to 1..500"),
    offset: str | None = Query(default=None, description="Rows to skip, negative means 0"),
    gateway: InspectionGateway = Depends(get_gateway),
):
    page = await gateway.fetch_rows(table_name, limit, offset)
    return LinesResponse(lines=page.rows)

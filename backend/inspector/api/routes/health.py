"""Health endpoints. No authentication required.

- /dbcheck      backend connectivity (ping), independent of the catalog
- /health/live  liveness probe (always 200)
- /health/ready readiness probe: catalog published
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from inspector.api.deps import get_gateway
from inspector.schemas.inspector import DbCheckResponse
from inspector.services.catalog import CatalogState
from inspector.services.inspection_gateway import InspectionGateway

router = APIRouter()
logger = structlog.stdlib.get_logger("inspector.health")


@router.get("/dbcheck", response_model=DbCheckResponse)
async def dbcheck(gateway: InspectionGateway = Depends(get_gateway)):
    status = await gateway.health_check()
    if status.healthy:
        return DbCheckResponse(
            status="success",
            message="Database connection is healthy",
            backend=gateway.backend,
        )
    body = DbCheckResponse(
        status="error",
        message="Database connection failed",
        backend=gateway.backend,
        error=status.detail,
    )
    return JSONResponse(content=body.model_dump(), status_code=500)


@router.get("/health/live")
async def liveness():
    """Liveness probe: process is alive."""
    return {"status": "live"}


@router.get("/health/ready")
async def readiness(gateway: InspectionGateway = Depends(get_gateway)):
    """Readiness probe: the catalog has been published.

    A failed discovery is permanent for this process, so the error is
    reported to make the restart reason visible.
    """
    catalog = gateway.catalog
    if catalog.state is CatalogState.READY:
        snapshot = catalog.snapshot
        return {
            "status": "ready",
            "backend": gateway.backend,
            "relations": len(snapshot),
            "published_at": snapshot.published_at.isoformat(),
        }

    error = str(catalog.last_error) if catalog.last_error is not None else None
    if catalog.settled:
        logger.warning("readiness_check_failed", backend=gateway.backend, error=error)
    return JSONResponse(
        content={"status": "not_ready", "backend": gateway.backend, "error": error},
        status_code=503,
    )

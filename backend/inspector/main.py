"""Inspector FastAPI application entry point."""

import asyncio
import contextlib
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from inspector.adapters.factory import build_adapter
from inspector.api.routes import health, index, metrics, tables
from inspector.core.config import settings
from inspector.core.errors import InspectorError
from inspector.core.logging_config import configure_logging
from inspector.core.metrics import app_info
from inspector.core.middleware import ObservabilityMiddleware, SecurityHeadersMiddleware
from inspector.schemas.inspector import ErrorResponse
from inspector.services.catalog import CatalogCache, start_discovery
from inspector.services.gatekeeper import parse_allow_list
from inspector.services.inspection_gateway import InspectionGateway

configure_logging()

logger = structlog.stdlib.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle events."""
    backend = settings.backend
    app_info.info({"version": "0.1.0", "env": settings.app_env, "backend": backend.db_backend})

    adapter = build_adapter(backend)
    catalog = CatalogCache(backend=adapter.name)
    app.state.gateway = InspectionGateway(adapter, catalog)

    # Discovery runs once in the background; relation routes answer 503 until it publishes.
    discovery = start_discovery(adapter, catalog, parse_allow_list(backend.allowed_tables))
    logger.info("inspector_started", backend=adapter.name)

    yield

    discovery.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await discovery
    await adapter.close()
    logger.info("inspector_stopped", backend=adapter.name)


app = FastAPI(
    title="Inspector",
    description="Read-only schema introspection and bounded row reads over one database",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ObservabilityMiddleware)


@app.exception_handler(InspectorError)
async def inspector_error_handler(request: Request, exc: InspectorError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            kind=exc.kind,
            error=exc.detail or exc.message,
        )
    body = ErrorResponse(error=exc.message, kind=exc.kind, details=exc.detail)
    return JSONResponse(content=body.model_dump(), status_code=exc.status_code)


app.include_router(index.router, tags=["index"])
app.include_router(health.router, tags=["health"])
app.include_router(tables.router, prefix="/tables", tags=["tables"])
app.include_router(metrics.router, tags=["metrics"])

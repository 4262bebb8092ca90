"""Dependency injection for FastAPI routes.

The gateway is built once in the lifespan and stored on ``app.state``.
Route handlers receive it via Depends() so tests can override it.
"""

from fastapi import Request

from inspector.services.inspection_gateway import InspectionGateway


async def get_gateway(request: Request) -> InspectionGateway:
    """Return the inspection gateway from app state."""
    return request.app.state.gateway

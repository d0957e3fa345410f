"""
Health check router.

Liveness endpoint for the coaching service. Reports the application
version, the configured similarity store backend and how many workflow
runs are still executing. Never touches a gateway.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from app.core.config import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    vector_store_backend: str
    workflows_in_flight: int


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service status, version and pending workflow runs.",
)
def health_check(request: Request) -> HealthResponse:
    """Return current application health status."""
    service = getattr(request.app.state, "workflow_service", None)
    return HealthResponse(
        status="ok",
        version=settings.version,
        vector_store_backend=settings.vector_store_backend,
        workflows_in_flight=service.in_flight if service is not None else 0,
    )

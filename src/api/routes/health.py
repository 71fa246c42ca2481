"""Health check route for figurine-service."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src import __version__
from src.core.constants import DEFAULT_SERVICE_NAME


class HealthResponse(BaseModel):
    """Response model for GET /api/health."""

    ok: bool = Field(default=True, description="Service is up")
    service: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name",
        examples=["figurine-service"],
    )
    version: str = Field(
        default=__version__,
        description="Service version",
        examples=["0.1.0"],
    )
    demo_mode: bool = Field(
        default=False,
        description="True when no model credential is configured",
    )


router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return 200 while the process is serving requests."""
    service = getattr(request.app.state, "generation_service", None)
    return HealthResponse(
        service=getattr(request.app.state, "service_name", DEFAULT_SERVICE_NAME),
        demo_mode=bool(service is not None and service.config.demo_mode),
    )

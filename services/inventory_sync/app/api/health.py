from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.services.sync_guard import get_sync_guard

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status", examples=["healthy"])
    service: str = Field(..., description="Service name", examples=["inventory-sync-service"])
    version: str = Field(..., description="Service version", examples=["1.0.0"])
    sync_in_progress: bool = Field(..., description="Whether a sync is currently running")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="""
    Health check endpoint for monitoring and load balancer health checks.

    Returns the service status, name, version and whether a sync is running.
    """,
)
async def health():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        service="inventory-sync-service",
        version="1.0.0",
        sync_in_progress=get_sync_guard().in_progress,
    )

"""Health check API endpoints."""

from fastapi import APIRouter

from grindflow.core.config import settings
from grindflow.core.database import db_client
from grindflow.schemas.api import HealthCheckResponse

router = APIRouter()


@router.get(
    "",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and healthy",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    db_health = await db_client.health_check()
    healthy = db_health["status"] == "healthy"

    return HealthCheckResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        message="Server is running" if healthy else "Server is running without a database connection",
    )

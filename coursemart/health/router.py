"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import ORJSONResponse

from coursemart.config import get_settings
from coursemart.core.database import AsyncCassandraConnection
from coursemart.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - confirms if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> ORJSONResponse:
    """Readiness check - the database must be connected; Redis is optional."""
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if database
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if database else "not_ready",
            "environment": settings.environment,
            "database": database,
            "redis": get_redis() is not None,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

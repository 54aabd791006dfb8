"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from mediqueue.config import settings
from mediqueue.core.redis_client import check_redis_connection
from mediqueue.database import check_database_connection
from mediqueue.services.broadcaster import broadcaster

router = APIRouter()

ComponentStatus = Literal["healthy", "unhealthy"]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """
    Health of the queue engine and what it depends on.

    A missing database reports ``unhealthy`` with a 503. A missing Redis,
    which only backs the doctor stats cache, reports ``degraded``.
    """

    database: ComponentStatus
    redis: ComponentStatus
    socket_connections: int


def _component(ok: bool) -> ComponentStatus:
    return "healthy" if ok else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the database."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
    responses={503: {"model": DetailedHealthResponse}},
)
async def detailed_health_check(response: Response) -> DetailedHealthResponse:
    """
    Detailed health check with database, Redis and realtime status.

    Returns:
        Component health plus the number of connected queue displays
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database=_component(db_healthy),
        redis=_component(redis_healthy),
        socket_connections=broadcaster.connection_count,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Pong."""
    return {"message": "pong"}

"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Response
from pydantic import BaseModel

from dashboard_analytics.config import get_settings
from dashboard_analytics.database.connection import check_database_health
from dashboard_analytics.serving.cache import get_redis

settings = get_settings()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


async def check_redis_health() -> Dict[str, Any]:
    """Ping Redis; only meaningful when the snapshot store lives there."""
    try:
        await get_redis().ping()
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Redis connectivity (when the snapshot cache uses Redis)
    """
    checks: Dict[str, Any] = {}
    overall_status = "healthy"

    db_health = await check_database_health()
    checks["database"] = db_health
    if db_health.get("status") != "healthy":
        overall_status = "unhealthy"

    if settings.analytics.cache_backend == "redis":
        redis_health = await check_redis_health()
        checks["redis"] = redis_health
        if redis_health["status"] != "healthy" and overall_status == "healthy":
            overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe: 200 while the process is serving."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """
    Readiness probe endpoint.

    Returns 503 until the raw data store answers.
    """
    db_health = await check_database_health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}

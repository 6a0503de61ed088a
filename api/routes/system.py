"""
System Routes: Health Check and Monitoring Endpoints

Health reports the database and the counter store separately; a store
outage degrades the service (limits and caching fail open) but does not
make it unhealthy.
"""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from api.schemas import HealthCheckResponse
from config.settings import get_settings
from container import get_database, get_metrics, get_redis
from infrastructure.database import DatabaseManager
from infrastructure.monitoring import MetricsCollector, get_logger
from infrastructure.redis_client import RedisClient

router = APIRouter(tags=["System"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="System health check with dependency status",
)
async def health_check(
    db: DatabaseManager = Depends(get_database),
    redis: RedisClient = Depends(get_redis),
) -> HealthCheckResponse:
    dependencies: Dict[str, str] = {}

    try:
        dependencies["database"] = "healthy" if await db.health_check() else "unhealthy"
    except Exception as e:
        logger.warning("health_check_database_failed", error=str(e))
        dependencies["database"] = "unhealthy"

    if redis.is_available and await redis.ping():
        dependencies["redis"] = "healthy"
    else:
        dependencies["redis"] = f"unavailable ({redis.state.value})"

    if dependencies["database"] != "healthy":
        overall = "unhealthy"
    elif dependencies["redis"] != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthCheckResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=get_settings().app_version,
        dependencies=dependencies,
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Metrics in Prometheus text exposition format",
)
async def prometheus_metrics(metrics: MetricsCollector = Depends(get_metrics)) -> Response:
    return Response(content=metrics.export_metrics(), media_type=metrics.get_content_type())

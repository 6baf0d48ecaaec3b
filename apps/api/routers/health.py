"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from config import settings
from database import get_db
from routers.dependencies import get_store_health
from services.document_store import SqlDocumentStore
from services.store_health import StoreHealth

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    store_health: StoreHealth = Depends(get_store_health),
):
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
        "store": store_health.snapshot(),
    }

    # Check database connection
    try:
        await SqlDocumentStore(db).ping()
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    # Check Redis connection (rate limits fall back to in-process counters)
    try:
        r = redis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    store_health: StoreHealth = Depends(get_store_health),
):
    """Kubernetes-style readiness probe backed by the cached store verdict."""
    ready = await store_health.check(SqlDocumentStore(db).ping)
    if not ready:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "store": store_health.snapshot()},
        )
    return {"ready": True, "store": store_health.snapshot()}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}

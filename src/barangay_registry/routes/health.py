"""
Kubernetes-style health probes.

- `/health/liveness`: the process is up.
- `/health/readiness`: Redis answers a ping. Returns `503` otherwise.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from barangay_registry.managers.logging_manager import get_logger
from barangay_registry.managers.redis_manager import redis_manager

logger = get_logger(prefix="[HEALTH]")

router = APIRouter(prefix="/health", tags=["System"])


@router.get("/liveness")
async def liveness():
    return {"status": "alive"}


@router.get("/readiness")
async def readiness():
    if await redis_manager.health_check():
        return {"status": "ready", "redis": "ok"}
    logger.warning("Readiness probe failed: Redis unavailable")
    return JSONResponse(status_code=503, content={"status": "not_ready", "redis": "unavailable"})

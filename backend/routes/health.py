"""Health and readiness check routes."""

import logging

from fastapi import APIRouter, Depends

from config import settings
from services.context import ServiceContext, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ready")
async def ready() -> dict:
    """Readiness probe. Touches neither the store nor any upstream."""
    return {"status": "ok", "service": "inspiration-api", "commit": settings.git_sha}


@router.get("/health")
async def health(services: ServiceContext = Depends(get_services)) -> dict:
    """Deep health check: cache store reachability and upstream client readiness."""
    store_ok = await services.store.ping()
    if not store_ok:
        logger.warning("Health check: cache store unreachable")

    return {
        "status": "ok" if store_ok else "degraded",
        "service": "inspiration-api",
        "commit": settings.git_sha,
        "store": "connected" if store_ok else "error",
        "reddit": "configured" if services.reddit.configured else "not_configured",
        "trends": "ready" if services.trends.is_ready() else "not_ready",
        "trending_keywords": "ready" if services.trending.is_ready() else "not_ready",
    }

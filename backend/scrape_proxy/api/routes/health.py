"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health always returns 200 if the process is up (liveness)
    - GET /health/ready returns 503 while the cache is cold (readiness)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from scrape_proxy import __version__
from scrape_proxy.api.dependencies import get_refresher
from scrape_proxy.services.cache_refresher import CacheRefresher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "scrape-proxy",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(refresher: CacheRefresher = Depends(get_refresher)):
    """Readiness probe — ready once a payload has been cached."""
    snapshot = refresher.snapshot()
    if snapshot is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "cache_cold",
            },
        )
    return {
        "status": "ready",
        "cache": {
            "state": refresher.cache_state.value,
            "source": snapshot.source.value,
            "refreshed_at": snapshot.refreshed_at.isoformat(),
            "age_seconds": round(snapshot.age_seconds(), 1),
        },
        "refresher": {
            "state": refresher.state.value,
            "refreshes": refresher.refresh_count,
            "failures": refresher.failure_count,
            "skipped": refresher.skipped_count,
            "cold_fetches": refresher.cold_fetch_count,
        },
    }

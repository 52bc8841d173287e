"""Data Route — serves the cached upstream payload.

Invariants:
    - Warm cache: 200 with the cached bytes verbatim, no network I/O on this path
    - Cold cache: one shared inline fetch; success → 200, failure → ColdFetchError → 500
    - Every payload response carries Cache-Control: no-store
    - Repeated reads of a warm cache are byte-identical until the next successful refresh
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from scrape_proxy.core.payload_cache import CachedPayload
from scrape_proxy.api.dependencies import get_refresher
from scrape_proxy.services.cache_refresher import CacheRefresher

logger = logging.getLogger(__name__)
router = APIRouter(tags=["data"])

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


def _payload_response(payload: CachedPayload) -> Response:
    return Response(
        content=payload.body,
        media_type="application/json",
        headers=NO_STORE_HEADERS,
    )


@router.get("/data")
async def get_data(refresher: CacheRefresher = Depends(get_refresher)):
    """Return the cached payload, fetching it first if nothing is cached yet."""
    snapshot = refresher.snapshot()
    if snapshot is None:
        logger.info("Cache cold, fetching inline", extra={"path": "/data"})
        snapshot = await refresher.fetch_cold()
    return _payload_response(snapshot)

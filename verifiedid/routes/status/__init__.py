"""
Polling endpoints for the front-end.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from verifiedid.config import ACCESS_TOKEN_CACHE_KEY, Settings
from verifiedid.lib.cache import CacheService
from verifiedid.lib.fastapi import get_cache, get_settings
from verifiedid.lib.status_handler import handle_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["status"])


def _correlation_record(cache: CacheService, correlation_id: str) -> dict | None:
    if correlation_id == ACCESS_TOKEN_CACHE_KEY:
        return None
    record = cache.get(correlation_id)
    return record if isinstance(record, dict) else None


@router.get("/status")
async def request_status(
    request: Request,
    id: str = Query(...),
    cache: CacheService = Depends(get_cache),
):
    """Current state of an issuance or presentation request."""
    return handle_status(_correlation_record(cache, id))


@router.get("/cache")
async def cache_entry(
    request: Request,
    id: str = Query(...),
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Raw cached record, for debugging. Disabled unless APP_CACHE_DEBUG_ENABLED."""
    if not settings.cache_debug_enabled:
        return JSONResponse(
            status_code=404, content={"error": "not_found", "message": "Not Found"}
        )
    return JSONResponse(status_code=200, content=_correlation_record(cache, id))

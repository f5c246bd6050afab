"""
/api/issuer/* endpoints

Starts credential issuance through the Verified ID API and receives the
issuance callbacks.
"""

import json
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from verifiedid.config import Settings
from verifiedid.lib.cache import CacheService
from verifiedid.lib.callback_handler import handle_callback
from verifiedid.lib.fastapi import get_cache, get_settings, get_verifiedid_api, limiter
from verifiedid.lib.msal_auth import AuthenticationError
from verifiedid.lib.request_builders import build_issuance_request
from verifiedid.lib.verifiedid_api import VerifiedIdApiClient, VerifiedIdApiError
from verifiedid.routes import api_error_response, new_correlation_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issuer", tags=["issuer"])


@router.post("/request")
@limiter.limit("10/minute")
async def issue_request(
    request: Request,
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
    api: VerifiedIdApiClient = Depends(get_verifiedid_api),
):
    """Create an issuance request for the claims in the body."""
    try:
        claims = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Issuance request body is not JSON: {e}")
        claims = None
    if not isinstance(claims, dict):
        return JSONResponse(
            status_code=400,
            content={"error": "malformed_request", "message": "Request may be malformed."},
        )

    issuance = build_issuance_request(settings, claims, request)
    correlation_id = issuance.callback.state

    # The callback may arrive before the API call returns
    cache.put(correlation_id, new_correlation_record())

    try:
        data = await api.create_issuance_request(issuance)
    except AuthenticationError as e:
        logger.error(f"Access token acquisition failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "authentication_failed",
                "message": "Internal authentication failed.",
            },
        )
    except (VerifiedIdApiError, httpx.RequestError) as e:
        return api_error_response(e)

    data["id"] = correlation_id
    if issuance.pin is not None:
        data["pin"] = issuance.pin.value

    return JSONResponse(status_code=200, content=data)


@router.post("/callback")
async def issue_request_callback(
    request: Request,
    api_key: Optional[str] = Header(None, alias="api-key"),
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Called by the Verified ID service during issuance."""
    return await handle_callback(
        "issuance", api_key, await request.body(), cache, settings
    )

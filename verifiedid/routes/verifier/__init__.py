"""
/api/verifier/* endpoints

Starts credential presentations through the Verified ID API, describes the
configured presentation to the front-end, and receives presentation and
face-check callbacks.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from verifiedid.config import Settings
from verifiedid.lib.cache import CacheService
from verifiedid.lib.callback_handler import handle_callback
from verifiedid.lib.fastapi import get_cache, get_settings, get_verifiedid_api, limiter
from verifiedid.lib.msal_auth import AuthenticationError
from verifiedid.lib.request_builders import build_presentation_request
from verifiedid.lib.verifiedid_api import VerifiedIdApiClient, VerifiedIdApiError
from verifiedid.routes import api_error_response, new_correlation_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verifier", tags=["verifier"])


@router.post("/request")
@limiter.limit("10/minute")
async def presentation_request(
    request: Request,
    face_check: Optional[str] = Query(None, alias="faceCheck"),
    photo_claim_name: Optional[str] = Query(None, alias="photoClaimName"),
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
    api: VerifiedIdApiClient = Depends(get_verifiedid_api),
):
    """Create a presentation request; faceCheck=1 adds a face check."""
    presentation = build_presentation_request(
        settings,
        request,
        face_check=face_check == "1",
        photo_claim_name=photo_claim_name,
    )
    correlation_id = presentation.callback.state

    cache.put(correlation_id, new_correlation_record())

    try:
        data = await api.create_presentation_request(presentation)
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
    return JSONResponse(status_code=200, content=data)


@router.get("/get-presentation-details")
async def get_presentation_details(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """Describe the configured presentation request. Nothing is cached."""
    presentation = build_presentation_request(settings, request)
    credential = presentation.requestedCredentials[0]
    return JSONResponse(
        status_code=200,
        content={
            "clientName": presentation.registration.clientName,
            "purpose": credential.purpose,
            "didAuthority": presentation.authority,
            "type": credential.type,
            "acceptedIssuers": credential.acceptedIssuers[0],
            "photoClaimName": settings.photo_claim_name,
            "useFaceCheck": settings.use_face_check,
        },
    )


@router.post("/callback")
async def verify_request_callback(
    request: Request,
    api_key: Optional[str] = Header(None, alias="api-key"),
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Called by the Verified ID service during presentation."""
    return await handle_callback(
        "presentation", api_key, await request.body(), cache, settings
    )


@router.post("/selfie-callback")
async def selfie_callback(
    request: Request,
    api_key: Optional[str] = Header(None, alias="api-key"),
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
):
    """Called by the Verified ID service once the face-check selfie is taken."""
    return await handle_callback(
        "selfie", api_key, await request.body(), cache, settings
    )

import logging

import httpx
from fastapi.responses import JSONResponse

from verifiedid.lib.verifiedid_api import VerifiedIdApiError

logger = logging.getLogger(__name__)


def new_correlation_record() -> dict:
    return {"status": "request_created", "message": "Waiting for QR code to be scanned"}


def api_error_response(error: VerifiedIdApiError | httpx.RequestError) -> JSONResponse:
    """Map a failed Verified ID API call to a 502 response."""
    if isinstance(error, httpx.RequestError):
        logger.error(f"Verified ID API unreachable: {error}")
        return JSONResponse(
            status_code=502,
            content={
                "error": "verifiedid_unavailable",
                "message": "Could not reach the Verified ID service",
            },
        )
    return JSONResponse(
        status_code=502,
        content={
            "error": "verifiedid_api_error",
            "message": "The Verified ID service rejected the request",
            "upstreamStatus": error.status_code,
        },
    )

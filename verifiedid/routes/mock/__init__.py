"""
Local stand-in for the Verified ID create-request API.

Point VERIFIED_ID_API_ENDPOINT at this service (e.g. http://localhost:8080/)
and set APP_MOCK_API_ENABLED=true to run issuance and presentation flows
without an Entra tenant. Callbacks can then be posted by hand.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from verifiedid.config import Settings
from verifiedid.lib.fastapi import get_settings
from verifiedid.models import ApiResponse, dump_payload

router = APIRouter(prefix="/verifiableCredentials", tags=["mock"])

MOCK_EXPIRY_SECONDS = 300


def _mock_response(settings: Settings) -> JSONResponse:
    if not settings.mock_api_enabled:
        return JSONResponse(
            status_code=404, content={"error": "not_found", "message": "Not Found"}
        )
    request_id = str(uuid4())
    response = ApiResponse(
        requestId=request_id,
        url=f"openid-vc://?request_uri=https://mock.invalid/request/{request_id}",
        expiry=MOCK_EXPIRY_SECONDS,
    )
    return JSONResponse(status_code=201, content=dump_payload(response))


@router.post("/createIssuanceRequest")
async def mock_create_issuance_request(
    request: Request, settings: Settings = Depends(get_settings)
):
    return _mock_response(settings)


@router.post("/createPresentationRequest")
async def mock_create_presentation_request(
    request: Request, settings: Settings = Depends(get_settings)
):
    return _mock_response(settings)

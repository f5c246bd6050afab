"""
Builders for Verified ID issuance and presentation requests.

Each request gets a fresh correlation id in callback.state; the same id is
used as the correlation cache key.
"""

import secrets
from typing import Any
from uuid import uuid4

from fastapi import Request

from verifiedid.config import FACE_CHECK_CONFIDENCE_THRESHOLD, Settings
from verifiedid.models import (
    Callback,
    CallbackHeaders,
    Configuration,
    FaceCheck,
    IssuanceRequest,
    Pin,
    PresentationRequest,
    Registration,
    RequestedCredential,
    Validation,
)


def get_base_path(settings: Settings, request: Request) -> str:
    """Public HTTPS base URL of this service, always ending in '/'."""
    if settings.callback_base_url:
        return settings.callback_base_url.rstrip("/") + "/"
    port = request.url.port or 443
    return f"https://{request.url.hostname}:{port}/"


def from_mobile(request: Request) -> bool:
    user_agent = request.headers.get("user-agent", "").lower()
    return "android" in user_agent or "iphone" in user_agent


def generate_pin_code(length: int) -> str:
    """Random numeric pin of exactly `length` digits, leading zeros kept."""
    if length < 1:
        raise ValueError("Pin length must be positive")
    # Upper bound mirrors the all-nines value, which is never drawn
    pin = secrets.randbelow(10**length - 1)
    return str(pin).zfill(length)


def _callback(settings: Settings, request: Request, path: str) -> Callback:
    return Callback(
        url=get_base_path(settings, request) + path,
        state=str(uuid4()),
        headers=CallbackHeaders(api_key=settings.api_key),
    )


def build_issuance_request(
    settings: Settings, claims: dict[str, Any], request: Request
) -> IssuanceRequest:
    issuance = IssuanceRequest(
        authority=settings.did_authority,
        includeReceipt=True,
        registration=Registration(clientName=settings.client_name),
        callback=_callback(settings, request, "api/issuer/callback"),
        type=settings.credential_type,
        manifest=settings.manifest_url,
        claims=claims,
    )

    if not from_mobile(request) and settings.pin_code_length > 0:
        issuance.pin = Pin(
            value=generate_pin_code(settings.pin_code_length),
            length=settings.pin_code_length,
        )

    return issuance


def build_presentation_request(
    settings: Settings,
    request: Request,
    face_check: bool = False,
    photo_claim_name: str | None = None,
) -> PresentationRequest:
    validation = Validation(allowRevoked=False, validateLinkedDomain=True)
    if face_check:
        validation.faceCheck = FaceCheck(
            sourcePhotoClaimName=(photo_claim_name or "").strip()
            or settings.photo_claim_name,
            matchConfidenceThreshold=FACE_CHECK_CONFIDENCE_THRESHOLD,
        )

    return PresentationRequest(
        authority=settings.did_authority,
        includeReceipt=True,
        registration=Registration(clientName=settings.client_name),
        callback=_callback(settings, request, "api/verifier/callback"),
        requestedCredentials=[
            RequestedCredential(
                type=settings.credential_type,
                purpose=settings.purpose,
                acceptedIssuers=[settings.did_authority],
                configuration=Configuration(validation=validation),
            )
        ],
    )

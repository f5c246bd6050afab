"""
Verified ID request, response and callback payloads.

Field names follow the Verified ID REST API (camelCase). Outbound payloads
are serialized with `dump_payload` so unset optional fields are omitted.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


def dump_payload(model: BaseModel) -> dict:
    return model.model_dump(by_alias=True, exclude_none=True)


# -----------------------------------------------------------------------------
# Outbound requests
# -----------------------------------------------------------------------------


class CallbackHeaders(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="api-key")


class Callback(BaseModel):
    url: str
    state: str
    headers: CallbackHeaders


class Registration(BaseModel):
    clientName: str
    purpose: Optional[str] = None


class Pin(BaseModel):
    value: str
    length: int


class FaceCheck(BaseModel):
    sourcePhotoClaimName: str
    matchConfidenceThreshold: int


class Validation(BaseModel):
    allowRevoked: bool = False
    validateLinkedDomain: bool = True
    faceCheck: Optional[FaceCheck] = None


class Configuration(BaseModel):
    validation: Validation


class RequestedCredential(BaseModel):
    type: str
    purpose: str
    acceptedIssuers: list[str]
    configuration: Configuration


class IssuanceRequest(BaseModel):
    includeQRCode: bool = False
    includeReceipt: bool = True
    callback: Callback
    authority: str
    registration: Registration
    type: str
    manifest: str
    pin: Optional[Pin] = None
    claims: dict[str, Any] = Field(default_factory=dict)
    expirationDate: Optional[str] = None


class PresentationRequest(BaseModel):
    includeQRCode: bool = False
    includeReceipt: bool = True
    authority: str
    registration: Registration
    callback: Callback
    requestedCredentials: list[RequestedCredential]


class ApiResponse(BaseModel):
    """Create-request response; unknown provider fields are relayed as-is."""

    model_config = ConfigDict(extra="allow")

    requestId: Optional[str] = None
    url: Optional[str] = None
    expiry: Optional[int] = None
    qrCode: Optional[str] = None
    id: Optional[str] = None
    pin: Optional[str] = None


# -----------------------------------------------------------------------------
# Inbound callbacks
# -----------------------------------------------------------------------------


class CallbackError(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


class Receipt(BaseModel):
    id_token: Optional[str] = None
    vp_token: Optional[str] = None


class VerifiedCredentialsData(BaseModel):
    issuer: Optional[str] = None
    type: list[str] = Field(default_factory=list)
    claims: dict[str, Any] = Field(default_factory=dict)
    credentialState: Optional[dict[str, Any]] = None
    domainValidation: Optional[dict[str, Any]] = None
    faceCheck: Optional[dict[str, Any]] = None
    issuanceDate: Optional[str] = None
    expirationDate: Optional[str] = None


class CallbackEvent(BaseModel):
    requestId: Optional[str] = None
    requestStatus: str = ""
    state: str = ""
    subject: Optional[str] = None
    verifiedCredentialsData: list[VerifiedCredentialsData] = Field(
        default_factory=list
    )
    receipt: Optional[Receipt] = None
    error: Optional[CallbackError] = None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def decode_callback_event(raw: str | bytes) -> CallbackEvent:
    """
    Decode a callback body, tolerating payloads the model does not accept.

    Strict validation is tried first. If it fails, only requestId,
    requestStatus, state and error are pulled from the raw JSON and a
    partial CallbackEvent is returned. Raises ValueError when the body is
    not a JSON object at all.
    """
    try:
        return CallbackEvent.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Callback event did not validate, using partial decode: {e}")

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Callback body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Callback body is not a JSON object")

    error = None
    raw_error = data.get("error")
    if isinstance(raw_error, dict):
        error = CallbackError(
            code=_as_text(raw_error.get("code")),
            message=_as_text(raw_error.get("message")),
        )

    return CallbackEvent(
        requestId=_as_text(data.get("requestId")) or None,
        requestStatus=_as_text(data.get("requestStatus")),
        state=_as_text(data.get("state")),
        error=error,
    )

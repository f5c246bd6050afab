"""
Translates cached correlation records into status responses for the front-end.
"""

import logging
from typing import Any

import jwt
from fastapi.responses import JSONResponse

from verifiedid.models import CallbackEvent, decode_callback_event, dump_payload

logger = logging.getLogger(__name__)

NOT_CREATED_RESPONSE = {"status": "request_not_created", "message": "No data"}

STATUS_MESSAGES = {
    "request_created": "Waiting to scan QR code",
    "request_retrieved": "QR code is scanned. Waiting for user action...",
    "selfie_taken": "Selfie taken. Waiting for verification result...",
    "issuance_successful": "Issuance successful",
    "presentation_verified": "Presentation verified",
}


def jwt_payload(token: str) -> dict:
    """Return the unverified payload of a compact JWT."""
    return jwt.decode(token, options={"verify_signature": False})


def extract_credential_jti(vp_token: str) -> str | None:
    """
    Pull the unique id of the first presented credential.

    The receipt vp_token is a JWT whose vp.verifiableCredential[0] is itself
    a JWT; the credential's jti claim is returned.
    """
    vp = jwt_payload(vp_token).get("vp")
    credentials = vp.get("verifiableCredential") if isinstance(vp, dict) else None
    if not isinstance(credentials, list) or not credentials or not isinstance(
        credentials[0], str
    ):
        raise ValueError("vp_token carries no verifiable credential")
    jti = jwt_payload(credentials[0]).get("jti")
    return jti if isinstance(jti, str) else None


def _error_message(event: CallbackEvent | None) -> str:
    if event is None or event.error is None:
        return ""
    return event.error.message or ""


def build_status_response(record: dict) -> dict[str, Any]:
    """
    Build the status payload for a cached record.

    Raises ValueError when the stored callback cannot be decoded and
    jwt.InvalidTokenError when its receipt tokens cannot.
    """
    status = record.get("status", "")
    response: dict[str, Any] = {"status": status}

    event = None
    if record.get("callback"):
        event = decode_callback_event(record["callback"])

    if status == "issuance_error":
        response["message"] = f"Issuance failed: {_error_message(event)}"
    elif status == "presentation_error":
        response["message"] = f"Presentation failed: {_error_message(event)}"
    elif status in STATUS_MESSAGES:
        response["message"] = STATUS_MESSAGES[status]

    if status == "presentation_verified" and event is not None:
        credentials = event.verifiedCredentialsData
        first = credentials[0] if credentials else None
        response["subject"] = event.subject
        response["payload"] = [dump_payload(c) for c in credentials]
        response["type"] = first.type if first else None
        response["issuanceDate"] = first.issuanceDate if first else None
        response["expirationDate"] = first.expirationDate if first else None
        if event.receipt is not None and event.receipt.vp_token:
            response["jti"] = extract_credential_jti(event.receipt.vp_token)

    return response


def handle_status(record: dict | None) -> JSONResponse:
    if record is None:
        return JSONResponse(status_code=200, content=NOT_CREATED_RESPONSE)

    try:
        content = build_status_response(record)
    except (ValueError, jwt.InvalidTokenError) as e:
        logger.error(f"Could not build status response: {e}")
        return JSONResponse(
            status_code=400,
            content={"status": "error", "message": "Technical error"},
        )

    return JSONResponse(status_code=200, content=content)

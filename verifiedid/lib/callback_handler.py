import logging
import secrets
from typing import Literal, Optional

from fastapi.responses import JSONResponse

from verifiedid.config import ACCESS_TOKEN_CACHE_KEY, Settings
from verifiedid.lib.cache import CacheService
from verifiedid.models import decode_callback_event

logger = logging.getLogger(__name__)

RequestType = Literal["issuance", "presentation", "selfie"]

VALID_STATUSES: dict[str, frozenset[str]] = {
    "issuance": frozenset(
        {"request_retrieved", "issuance_successful", "issuance_error"}
    ),
    "presentation": frozenset(
        {"request_retrieved", "presentation_verified", "presentation_error"}
    ),
    "selfie": frozenset({"selfie_taken"}),
}

TERMINAL_STATUSES = frozenset(
    {
        "issuance_successful",
        "issuance_error",
        "presentation_verified",
        "presentation_error",
    }
)


class RequestAlreadyCompleted(Exception):
    def __init__(self, current_status: str):
        self.current_status = current_status
        super().__init__(current_status)


def api_key_matches(provided: Optional[str], expected: str) -> bool:
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def handle_callback(
    request_type: RequestType,
    api_key: Optional[str],
    body: bytes,
    cache: CacheService,
    settings: Settings,
) -> JSONResponse:
    """Validate a Verified ID callback and fold it into the cached record."""
    if not api_key_matches(api_key, settings.api_key):
        logger.error("api-key wrong or missing")
        return JSONResponse(
            status_code=401,
            content={"error": "unauthorized", "message": "api-key wrong or missing"},
        )

    try:
        raw_body = body.decode("utf-8")
        event = decode_callback_event(raw_body)
    except (UnicodeDecodeError, ValueError) as e:
        logger.error(f"Could not decode {request_type} callback: {e}")
        return JSONResponse(
            status_code=400,
            content={"error": "technical_error", "message": "Technical error"},
        )

    status = event.requestStatus
    if status not in VALID_STATUSES[request_type]:
        logger.error(f"Unsupported requestStatus: {status}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "unsupported_status",
                "message": f"Unsupported requestStatus: {status}",
            },
        )

    def merge(record: dict) -> dict:
        current = record.get("status")
        if (
            settings.callback_terminal_policy == "reject"
            and current in TERMINAL_STATUSES
            and current != status
        ):
            raise RequestAlreadyCompleted(current)
        record["status"] = status
        record["callback"] = raw_body
        return record

    # The access token shares the cache but is never a correlation record
    if event.state == ACCESS_TOKEN_CACHE_KEY:
        updated = None
    else:
        try:
            updated = cache.update(event.state, merge)
        except RequestAlreadyCompleted as e:
            logger.warning(
                f"Ignoring {status} for state {event.state}: already {e.current_status}"
            )
            return JSONResponse(
                status_code=409,
                content={
                    "error": "request_completed",
                    "message": f"Request already completed with status {e.current_status}",
                },
            )

    if updated is None:
        logger.info(f"Unknown state: {event.state}")
        return JSONResponse(
            status_code=400,
            content={"error": "unknown_state", "message": "Unknown state"},
        )

    logger.debug(f"State {event.state} is now {status}")
    return JSONResponse(status_code=200, content={})

"""
Shared fixtures.

Provides test settings wired into the FastAPI app, a fake Verified ID API
client whose calls are AsyncMocks, and an HTTPX AsyncClient talking to the
app over ASGI.
"""

import base64
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from starlette.requests import Request

from verifiedid.config import Settings

API_KEY = "test-api-key"


# ---------------------------------------------------------------------------
# Fake Verified ID API
# ---------------------------------------------------------------------------

def _api_response(request_id: str) -> dict:
    return {
        "requestId": request_id,
        "url": f"openid-vc://?request_uri=https://verifiedid.example/{request_id}",
        "expiry": 1700000000,
    }


def make_fake_api():
    """Stand-in for VerifiedIdApiClient; each call returns a fresh response dict."""
    api = MagicMock()
    api.create_issuance_request = AsyncMock(
        side_effect=lambda request: _api_response("issuance-req")
    )
    api.create_presentation_request = AsyncMock(
        side_effect=lambda request: _api_response("presentation-req")
    )
    return api


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return Settings(
        client_id="client-id",
        client_secret="client-secret",
        tenant="tenant-id",
        did_authority="did:web:issuer.example",
        client_name="Test Relay",
        api_key=API_KEY,
        credential_type="VerifiedEmployee",
        purpose="Verify your employment",
        manifest_url="https://verifiedid.example/manifest",
        pin_code_length=4,
        photo_claim_name="photo",
        use_face_check=True,
    )


@pytest.fixture
def app_state(settings):
    """Configure the app with test settings and a fake API client."""
    from verifiedid.main import app
    from verifiedid.lib.fastapi import configure_services

    configure_services(app, settings)
    app.state.verifiedid_api = make_fake_api()
    return app.state


@pytest_asyncio.fixture
async def client(app_state):
    """HTTPX async client talking to the FastAPI app with the API mocked."""
    from verifiedid.main import app

    # Disable rate limiting in tests
    from verifiedid.lib.fastapi import limiter
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    limiter.enabled = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def callback_headers(api_key=API_KEY):
    return {"api-key": api_key, "Content-Type": "application/json"}


def b64url(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def make_jwt(payload: dict) -> str:
    return f"{b64url({'alg': 'ES256', 'typ': 'JWT'})}.{b64url(payload)}.c2lnbmF0dXJl"


def make_vp_token(jti="urn:pic:1234") -> str:
    vc = make_jwt({"jti": jti, "vc": {"type": ["VerifiableCredential"]}})
    return make_jwt({"vp": {"verifiableCredential": [vc]}})


def make_verified_callback(state, vp_token=None) -> dict:
    event = {
        "requestId": "presentation-req",
        "requestStatus": "presentation_verified",
        "state": state,
        "subject": "did:ion:holder",
        "verifiedCredentialsData": [
            {
                "issuer": "did:web:issuer.example",
                "type": ["VerifiableCredential", "VerifiedEmployee"],
                "claims": {"name": "Alice"},
                "credentialState": {"revocationStatus": "VALID"},
                "domainValidation": {"url": "https://issuer.example/"},
                "issuanceDate": "2024-01-01T00:00:00Z",
                "expirationDate": "2025-01-01T00:00:00Z",
            }
        ],
    }
    if vp_token is not None:
        event["receipt"] = {"vp_token": vp_token}
    return event


def make_request(host="relay.example.com", port=None, user_agent="Mozilla/5.0 (X11; Linux)"):
    """Bare Starlette request as seen by the request builders."""
    host_header = f"{host}:{port}" if port else host
    scope = {
        "type": "http",
        "method": "POST",
        "scheme": "http",
        "path": "/api/issuer/request",
        "query_string": b"",
        "server": (host, port or 80),
        "headers": [
            (b"host", host_header.encode()),
            (b"user-agent", user_agent.encode()),
        ],
    }
    return Request(scope)

"""
Shared configuration for route handlers and services.

Values are read from the process environment. `load_settings()` is called
once at startup (see lib/fastapi.py) after the .env files are loaded.
"""

import os
from typing import Literal

from pydantic import BaseModel

ACCESS_TOKEN_CACHE_KEY = "MSALAccessToken"
FACE_CHECK_CONFIDENCE_THRESHOLD = 70
DEFAULT_SCOPE = "3db474b9-6a0c-4840-96ac-1fceb342124f/.default"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    # Entra ID (access token)
    authority: str = "https://login.microsoftonline.com/"
    tenant: str = ""
    managed_id: bool = False
    client_id: str = ""
    client_secret: str = ""
    client_cert_location: str = ""
    client_cert_key: str = ""
    scope: str = DEFAULT_SCOPE

    # Verified ID API
    api_endpoint: str = "https://verifiedid.did.msidentity.com/v1.0/"
    did_authority: str = ""
    client_name: str = ""
    api_key: str = ""
    credential_type: str = ""
    purpose: str = ""
    manifest_url: str = ""
    pin_code_length: int = 0
    photo_claim_name: str = "photo"
    use_face_check: bool = False

    # Service
    cache_max_size: int = 100
    cache_ttl_seconds: float = 15 * 60
    cache_debug_enabled: bool = False
    mock_api_enabled: bool = False
    callback_base_url: str | None = None
    callback_terminal_policy: Literal["reject", "allow"] = "reject"
    api_timeout_seconds: float = 30.0

    @property
    def resolved_authority(self) -> str:
        """Authority URL including the tenant, as MSAL expects it."""
        base = self.authority.rstrip("/")
        if self.tenant and not base.endswith(self.tenant):
            return f"{base}/{self.tenant}"
        return base


def load_settings() -> Settings:
    policy = os.getenv("APP_CALLBACK_TERMINAL_POLICY", "reject").lower()
    if policy not in ("reject", "allow"):
        raise ValueError(
            f"APP_CALLBACK_TERMINAL_POLICY must be 'reject' or 'allow', got {policy!r}"
        )

    return Settings(
        authority=os.getenv("ENTRA_AD_AUTHORITY", "https://login.microsoftonline.com/"),
        tenant=os.getenv("ENTRA_AD_TENANT", ""),
        managed_id=_env_bool("ENTRA_AD_MANAGED_ID"),
        client_id=os.getenv("ENTRA_AD_CLIENT_ID", ""),
        client_secret=os.getenv("ENTRA_AD_CLIENT_SECRET", ""),
        client_cert_location=os.getenv("ENTRA_AD_CLIENT_CERT_LOCATION", ""),
        client_cert_key=os.getenv("ENTRA_AD_CLIENT_CERT_KEY", ""),
        scope=os.getenv("ENTRA_AD_SCOPE", DEFAULT_SCOPE),
        api_endpoint=os.getenv(
            "VERIFIED_ID_API_ENDPOINT", "https://verifiedid.did.msidentity.com/v1.0/"
        ),
        did_authority=os.getenv("VERIFIED_ID_DID_AUTHORITY", ""),
        client_name=os.getenv("VERIFIED_ID_CLIENT_NAME", ""),
        api_key=os.getenv("VERIFIED_ID_API_KEY", ""),
        credential_type=os.getenv("VERIFIED_ID_CREDENTIAL_TYPE", ""),
        purpose=os.getenv("VERIFIED_ID_PURPOSE", ""),
        manifest_url=os.getenv("VERIFIED_ID_MANIFEST_URL", ""),
        pin_code_length=int(os.getenv("VERIFIED_ID_PIN_CODE_LENGTH", "0")),
        photo_claim_name=os.getenv("VERIFIED_ID_PHOTO_CLAIM_NAME", "photo"),
        use_face_check=_env_bool("VERIFIED_ID_USE_FACE_CHECK"),
        cache_max_size=int(os.getenv("APP_CACHE_MAX_SIZE", "100")),
        cache_ttl_seconds=float(os.getenv("APP_CACHE_TTL_SECONDS", "900")),
        cache_debug_enabled=_env_bool("APP_CACHE_DEBUG_ENABLED"),
        mock_api_enabled=_env_bool("APP_MOCK_API_ENABLED"),
        callback_base_url=os.getenv("APP_CALLBACK_BASE_URL") or None,
        callback_terminal_policy=policy,
        api_timeout_seconds=float(os.getenv("APP_API_TIMEOUT_SECONDS", "30")),
    )

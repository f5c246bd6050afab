"""
Access tokens for the Verified ID API, obtained through MSAL.

The strategy (managed identity, client secret or client certificate) is
picked once from configuration. AccessTokenProvider caches the resulting
token in the shared CacheService under ACCESS_TOKEN_CACHE_KEY so repeated
calls within the cache TTL skip re-authentication.
"""

import asyncio
import logging
from pathlib import Path

import msal
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from verifiedid.config import ACCESS_TOKEN_CACHE_KEY, Settings
from verifiedid.lib.cache import CacheService

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised whenever an access token cannot be obtained."""


def _token_from_result(result: dict | None) -> str:
    if not result or "access_token" not in result:
        result = result or {}
        raise AuthenticationError(
            f"{result.get('error', 'unknown_error')}: "
            f"{result.get('error_description', 'no access token returned')}"
        )
    return result["access_token"]


class TokenStrategy:
    name = "base"

    def acquire_token(self) -> str:
        raise NotImplementedError


class ManagedIdentityStrategy(TokenStrategy):
    name = "managed_identity"

    def __init__(self, scope: str):
        # Managed identity endpoints take a resource, not a scope
        self.resource = scope.removesuffix("/.default")
        self.session = requests.Session()

    def acquire_token(self) -> str:
        client = msal.ManagedIdentityClient(
            msal.SystemAssignedManagedIdentity(),
            http_client=self.session,
        )
        return _token_from_result(client.acquire_token_for_client(resource=self.resource))


class ClientSecretStrategy(TokenStrategy):
    name = "client_secret"

    def __init__(self, client_id: str, client_secret: str, authority: str, scope: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority
        self.scope = scope

    def acquire_token(self) -> str:
        app = msal.ConfidentialClientApplication(
            self.client_id,
            client_credential=self.client_secret,
            authority=self.authority,
        )
        return _token_from_result(app.acquire_token_for_client(scopes=[self.scope]))


def load_private_key_pem(path: str) -> str:
    """Load a PEM or DER (PKCS8) private key and return it as PKCS8 PEM."""
    data = Path(path).read_bytes()
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except ValueError:
        key = serialization.load_der_private_key(data, password=None)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def load_certificate(path: str) -> x509.Certificate:
    data = Path(path).read_bytes()
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError:
        return x509.load_der_x509_certificate(data)


class CertificateStrategy(TokenStrategy):
    name = "certificate"

    def __init__(
        self,
        client_id: str,
        cert_location: str,
        key_location: str,
        authority: str,
        scope: str,
    ):
        self.client_id = client_id
        self.cert_location = cert_location
        self.key_location = key_location
        self.authority = authority
        self.scope = scope

    def client_credential(self) -> dict:
        cert = load_certificate(self.cert_location)
        return {
            "private_key": load_private_key_pem(self.key_location),
            "thumbprint": cert.fingerprint(hashes.SHA1()).hex(),
            "public_certificate": cert.public_bytes(serialization.Encoding.PEM).decode(
                "ascii"
            ),
        }

    def acquire_token(self) -> str:
        app = msal.ConfidentialClientApplication(
            self.client_id,
            client_credential=self.client_credential(),
            authority=self.authority,
        )
        return _token_from_result(app.acquire_token_for_client(scopes=[self.scope]))


def select_strategy(settings: Settings) -> TokenStrategy:
    """Managed identity first, then client secret, then certificate."""
    if settings.managed_id:
        return ManagedIdentityStrategy(settings.scope)
    if settings.client_secret:
        return ClientSecretStrategy(
            settings.client_id,
            settings.client_secret,
            settings.resolved_authority,
            settings.scope,
        )
    return CertificateStrategy(
        settings.client_id,
        settings.client_cert_location,
        settings.client_cert_key,
        settings.resolved_authority,
        settings.scope,
    )


class AccessTokenProvider:
    def __init__(self, strategy: TokenStrategy, cache: CacheService):
        self.strategy = strategy
        self.cache = cache
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Return the cached access token, acquiring a new one on a miss."""
        token = self.cache.get(ACCESS_TOKEN_CACHE_KEY)
        if token:
            return token

        async with self._lock:
            # Another request may have refreshed the slot while we waited
            token = self.cache.get(ACCESS_TOKEN_CACHE_KEY)
            if token:
                return token

            logger.debug(f"MSAL acquire access token via {self.strategy.name}")
            try:
                token = await asyncio.to_thread(self.strategy.acquire_token)
            except AuthenticationError:
                raise
            except Exception as e:
                raise AuthenticationError(
                    f"{self.strategy.name} token acquisition failed: {e}"
                ) from e

            self.cache.put(ACCESS_TOKEN_CACHE_KEY, token)
            return token

    def invalidate(self) -> None:
        logger.info("Dropping cached access token")
        self.cache.delete(ACCESS_TOKEN_CACHE_KEY)

import logging

import httpx

from verifiedid.config import Settings
from verifiedid.lib.msal_auth import AccessTokenProvider
from verifiedid.models import IssuanceRequest, PresentationRequest, dump_payload

logger = logging.getLogger(__name__)


class VerifiedIdApiError(Exception):
    """The Verified ID API answered with an error status or a non-JSON body."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Verified ID API error ({status_code}): {body}")


class VerifiedIdApiClient:
    """Forwards built requests to the Verified ID REST API."""

    def __init__(
        self,
        settings: Settings,
        token_provider: AccessTokenProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.token_provider = token_provider
        self._transport = transport

    def _url(self, path: str) -> str:
        base = self.settings.api_endpoint
        if not base.endswith("/"):
            base += "/"
        return f"{base}{path}"

    async def _post(self, path: str, payload: dict) -> dict:
        """
        POST payload with a bearer token and return the decoded JSON body.

        A 401 drops the cached access token and retries once with a fresh
        one. Raises AuthenticationError, VerifiedIdApiError or
        httpx.RequestError.
        """
        url = self._url(path)

        async with httpx.AsyncClient(
            timeout=self.settings.api_timeout_seconds, transport=self._transport
        ) as client:
            for attempt in (1, 2):
                token = await self.token_provider.get_token()
                resp = await client.post(
                    url,
                    headers={
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                        "Authorization": f"Bearer {token}",
                    },
                    json=payload,
                )
                if resp.status_code == 401 and attempt == 1:
                    logger.warning(f"Verified ID API rejected access token for {path}, retrying")
                    self.token_provider.invalidate()
                    continue
                break

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.error(f"Verified ID API {path} failed ({resp.status_code}): {resp.text}")
            raise VerifiedIdApiError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise VerifiedIdApiError(resp.status_code, resp.text) from e
        if not isinstance(data, dict):
            raise VerifiedIdApiError(resp.status_code, resp.text)

        logger.debug(f"Verified ID API {path} response: {data}")
        return data

    async def create_issuance_request(self, request: IssuanceRequest) -> dict:
        return await self._post(
            "verifiableCredentials/createIssuanceRequest", dump_payload(request)
        )

    async def create_presentation_request(self, request: PresentationRequest) -> dict:
        return await self._post(
            "verifiableCredentials/createPresentationRequest", dump_payload(request)
        )

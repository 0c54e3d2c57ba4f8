"""
Token Exchange — redeems a signed assertion for an FCM access token.

POSTs the JWT-bearer grant to Google's OAuth2 token endpoint and parses
{"access_token", "expires_in"} from the response. Any failure is fatal
for the request: a rejected assertion will not start working on retry.

FcmCredentialMinter ties the pieces together (service account ->
assertion -> access token) behind a single call. It caches nothing;
every dispatch gets a freshly minted token.
"""

import logging
from typing import Callable, Protocol

import httpx

from app.core.errors import TokenExchangeError
from app.models.credentials import AccessToken, ServiceAccountCredential, SignedAssertion
from app.services.assertion import GOOGLE_TOKEN_URI, mint_assertion

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
HTTP_TIMEOUT_SECONDS = 10.0


async def exchange_assertion(
    assertion: SignedAssertion,
    client: httpx.AsyncClient,
) -> AccessToken:
    """
    Exchange a signed assertion for a bearer access token.

    Args:
        assertion: The freshly minted assertion.
        client: Open httpx client for the current dispatch.

    Returns:
        AccessToken parsed from the token endpoint's JSON response.

    Raises:
        TokenExchangeError: On network failure, a non-2xx status, or a
            response without an access_token.
    """
    try:
        response = await client.post(
            GOOGLE_TOKEN_URI,
            data={
                "grant_type": JWT_BEARER_GRANT_TYPE,
                "assertion": assertion.compact,
            },
            timeout=HTTP_TIMEOUT_SECONDS,
        )
    except httpx.RequestError as exc:
        logger.error("Token endpoint unreachable: %s", exc)
        raise TokenExchangeError(f"Failed to get access token: {exc}") from exc

    if not response.is_success:
        logger.error(
            "Token endpoint rejected assertion: status=%d",
            response.status_code,
        )
        raise TokenExchangeError(
            f"Failed to get access token: {response.status_code} {response.text}",
            provider_status=response.status_code,
            body=response.text,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenExchangeError(
            "Failed to get access token: token endpoint returned invalid JSON",
            provider_status=response.status_code,
            body=response.text,
        ) from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise TokenExchangeError(
            "Failed to get access token: response has no access_token",
            provider_status=response.status_code,
            body=response.text,
        )

    return AccessToken(
        value=access_token,
        expires_in_seconds=int(payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)),
    )


class ProviderCredentialMinter(Protocol):
    """Anything that can produce a bearer token for the push provider."""

    project_id: str

    async def mint_access_token(self, client: httpx.AsyncClient) -> AccessToken: ...


class FcmCredentialMinter:
    """
    Mints FCM access tokens from a Firebase service account.

    The service account is loaded on first use, so a dispatch that ends
    early (no registered tokens) never touches the key material. One
    minter serves one request.

    Usage:
        minter = FcmCredentialMinter(load_configured_service_account)
        async with httpx.AsyncClient() as client:
            token = await minter.mint_access_token(client)
    """

    def __init__(self, credential_loader: Callable[[], ServiceAccountCredential]) -> None:
        self._credential_loader = credential_loader
        self._credential: ServiceAccountCredential | None = None

    @property
    def credential(self) -> ServiceAccountCredential:
        if self._credential is None:
            self._credential = self._credential_loader()
        return self._credential

    @property
    def project_id(self) -> str:
        return self.credential.project_id

    async def mint_access_token(self, client: httpx.AsyncClient) -> AccessToken:
        assertion = mint_assertion(self.credential)
        token = await exchange_assertion(assertion, client)
        logger.debug(
            "Obtained FCM access token (project=%s, expires_in=%d)",
            self.project_id,
            token.expires_in_seconds,
        )
        return token

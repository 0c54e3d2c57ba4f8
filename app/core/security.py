"""
Security — Caller authentication for push endpoints.

Validates Bearer tokens against Supabase Auth and yields the
authenticated caller for use in route handlers. The user ID returned
by Supabase is the only identity the rest of the request trusts;
nothing in the request body can override it.

Every failure (no header, wrong scheme, network error, rejected
token, response without a user ID) becomes the same 401 Unauthorized
so callers cannot tell which check failed. The specific cause is only
logged server-side.

Usage in route handlers:
    from app.core.security import get_authenticated_caller

    @router.post("/protected")
    async def protected_route(caller: AuthenticatedCaller = Depends(get_authenticated_caller)):
        return {"user_id": caller.user_id}
"""

import logging
from typing import Protocol

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import SUPABASE_ANON_KEY, SUPABASE_URL
from app.core.errors import ConfigurationError, UnauthorizedError
from app.models.credentials import AuthenticatedCaller

logger = logging.getLogger(__name__)

AUTH_TIMEOUT_SECONDS = 10.0

# auto_error=False so a missing or non-Bearer header reaches us as None
# and gets the JSON 401 body instead of FastAPI's default 403.
_bearer_scheme = HTTPBearer(auto_error=False)


class CallerAuthenticator(Protocol):
    """Anything that can turn a bearer token into an AuthenticatedCaller."""

    async def authenticate(self, token: str) -> AuthenticatedCaller: ...


class SupabaseCallerAuthenticator:
    """Verifies caller tokens with Supabase Auth's /auth/v1/user endpoint."""

    def __init__(self, supabase_url: str, anon_key: str) -> None:
        self._supabase_url = supabase_url.rstrip("/")
        self._anon_key = anon_key

    async def authenticate(self, token: str) -> AuthenticatedCaller:
        """
        Ask Supabase who owns this token.

        Raises:
            ConfigurationError: If the Supabase URL or anon key is unset.
            UnauthorizedError: For any verification failure, whatever the cause.
        """
        if not self._supabase_url or not self._anon_key:
            raise ConfigurationError("Supabase auth is not configured")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self._supabase_url}/auth/v1/user",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "apikey": self._anon_key,
                    },
                    timeout=AUTH_TIMEOUT_SECONDS,
                )
        except httpx.RequestError as exc:
            logger.warning("Auth service unreachable: %s", exc)
            raise UnauthorizedError() from exc

        if response.status_code != 200:
            logger.warning("Auth service rejected token: status=%d", response.status_code)
            raise UnauthorizedError()

        try:
            user_data = response.json()
        except ValueError as exc:
            logger.warning("Auth service returned a non-JSON body")
            raise UnauthorizedError() from exc

        user_id = user_data.get("id") if isinstance(user_data, dict) else None
        if not user_id:
            logger.warning("Auth service response has no user id")
            raise UnauthorizedError()

        return AuthenticatedCaller(user_id=user_id, access_token=token)


def get_caller_authenticator() -> CallerAuthenticator:
    """FastAPI dependency providing the configured authenticator."""
    return SupabaseCallerAuthenticator(SUPABASE_URL, SUPABASE_ANON_KEY)


async def get_authenticated_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    authenticator: CallerAuthenticator = Depends(get_caller_authenticator),
) -> AuthenticatedCaller:
    """
    FastAPI dependency that validates the bearer token and returns the caller.

    Raises:
        UnauthorizedError(401): If the token is missing, malformed, or rejected.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    return await authenticator.authenticate(credentials.credentials)

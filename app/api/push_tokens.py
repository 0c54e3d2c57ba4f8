"""
Push Tokens API — device registration for push delivery.

POST /api/v1/users/push-token   — Save (or refresh) an FCM token
DELETE /api/v1/users/push-token — Remove an FCM token

Both run through a caller-scoped Supabase client, so RLS limits every
write to the caller's own rows. The upsert is idempotent on
(user_id, token).
"""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from app.core.errors import BodyValidationError, PushTokenStoreError
from app.core.security import get_authenticated_caller
from app.db.supabase_client import get_caller_client
from app.models.credentials import AuthenticatedCaller
from app.models.push_tokens import (
    MAX_TOKEN_LENGTH,
    DeletePushTokenRequest,
    PushTokenResponse,
    UpsertPushTokenRequest,
)
from app.services.recipients import PUSH_TOKENS_TABLE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _clean_token(raw: str) -> str:
    token = raw.strip()
    if not token:
        raise BodyValidationError("token is required")
    if len(token.encode("utf-8", "surrogatepass")) > MAX_TOKEN_LENGTH:
        raise BodyValidationError("token is too long")
    return token


@router.post(
    "/push-token",
    status_code=status.HTTP_200_OK,
    response_model=PushTokenResponse,
)
async def upsert_push_token(
    payload: UpsertPushTokenRequest,
    caller: AuthenticatedCaller = Depends(get_authenticated_caller),
) -> PushTokenResponse:
    """
    Register or refresh an FCM token for the authenticated user.

    Called by the app on launch and whenever FCM rotates the token.

    Returns:
        200: Token stored.
        400: Empty or oversized token.
        401: Missing or invalid authentication token.
        500: Database error.
    """
    token = _clean_token(payload.token)
    row = {
        "user_id": caller.user_id,
        "token": token,
        "platform": payload.platform,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    client = get_caller_client(caller)
    try:
        await asyncio.to_thread(
            lambda: client.table(PUSH_TOKENS_TABLE)
            .upsert(row, on_conflict="user_id,token")
            .execute()
        )
    except Exception as exc:
        logger.error(
            "Failed to store push token for user %s: %s", caller.user_id[:8], exc
        )
        raise PushTokenStoreError(f"Failed to store push token: {exc}") from exc

    logger.info(
        "Push token registered for user %s (platform=%s, token=%s...)",
        caller.user_id[:8],
        payload.platform,
        token[:16],
    )
    return PushTokenResponse()


@router.delete(
    "/push-token",
    status_code=status.HTTP_200_OK,
    response_model=PushTokenResponse,
)
async def delete_push_token(
    payload: DeletePushTokenRequest,
    caller: AuthenticatedCaller = Depends(get_authenticated_caller),
) -> PushTokenResponse:
    """
    Remove an FCM token for the authenticated user.

    Deleting a token that was never registered is not an error.

    Returns:
        200: Token removed (or was already absent).
        400: Empty token.
        401: Missing or invalid authentication token.
        500: Database error.
    """
    token = _clean_token(payload.token)

    client = get_caller_client(caller)
    try:
        await asyncio.to_thread(
            lambda: client.table(PUSH_TOKENS_TABLE)
            .delete()
            .eq("user_id", caller.user_id)
            .eq("token", token)
            .execute()
        )
    except Exception as exc:
        logger.error(
            "Failed to delete push token for user %s: %s", caller.user_id[:8], exc
        )
        raise PushTokenStoreError(f"Failed to delete push token: {exc}") from exc

    logger.info(
        "Push token removed for user %s (token=%s...)", caller.user_id[:8], token[:16]
    )
    return PushTokenResponse()

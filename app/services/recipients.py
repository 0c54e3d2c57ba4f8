"""
Recipient Resolver — looks up the caller's registered FCM tokens.

Reads user_push_tokens through a caller-scoped Supabase client. An empty
list is a normal answer (the user has no devices yet); a failed query is
not, and ends the request with a 500.
"""

import asyncio
import logging
from typing import Callable, Protocol

from supabase import Client

from app.core.errors import RecipientLookupError
from app.db.supabase_client import get_caller_client
from app.models.credentials import AuthenticatedCaller

logger = logging.getLogger(__name__)

PUSH_TOKENS_TABLE = "user_push_tokens"


class RecipientResolver(Protocol):
    async def resolve(self, caller: AuthenticatedCaller) -> list[str]: ...


class SupabaseRecipientResolver:
    """Resolves device tokens from the user_push_tokens table."""

    def __init__(
        self,
        client_factory: Callable[[AuthenticatedCaller], Client] = get_caller_client,
    ) -> None:
        self._client_factory = client_factory

    async def resolve(self, caller: AuthenticatedCaller) -> list[str]:
        """
        Return every non-blank token registered to the caller.

        The supabase client is synchronous, so the query runs in a
        worker thread to keep the event loop free.

        Raises:
            RecipientLookupError: If the query fails.
        """
        client = self._client_factory(caller)

        def _query():
            return (
                client.table(PUSH_TOKENS_TABLE)
                .select("token")
                .eq("user_id", caller.user_id)
                .execute()
            )

        try:
            result = await asyncio.to_thread(_query)
        except Exception as exc:
            logger.error(
                "Failed to fetch push tokens for user %s: %s",
                caller.user_id[:8], exc,
            )
            raise RecipientLookupError(f"Failed to fetch tokens: {exc}") from exc

        tokens = [
            row["token"]
            for row in (result.data or [])
            if isinstance(row.get("token"), str) and row["token"].strip()
        ]

        logger.debug(
            "Resolved %d push token(s) for user %s",
            len(tokens), caller.user_id[:8],
        )
        return tokens

"""
Recipient Resolver Verification

Tests that:
1. Tokens are read from user_push_tokens filtered by the caller's user id
2. Blank and non-string tokens are dropped
3. No rows is an empty list, not an error
4. A failing query raises RecipientLookupError (500)
5. get_caller_client authorizes PostgREST with the caller's own token

Run with: pytest tests/test_recipient_resolver.py -v
"""

from unittest.mock import MagicMock, patch

import pytest

from app.core.errors import ConfigurationError, RecipientLookupError
from app.db.supabase_client import get_caller_client
from app.services.recipients import PUSH_TOKENS_TABLE, SupabaseRecipientResolver


def _mock_supabase(rows=None, error: Exception | None = None) -> MagicMock:
    """Supabase client whose table(...).select(...).eq(...).execute() returns rows."""
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.eq.return_value = mock_table
    if error is not None:
        mock_table.execute.side_effect = error
    else:
        mock_table.execute.return_value = MagicMock(data=rows)

    mock_client = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client


class TestSupabaseRecipientResolver:
    """Tests for the token lookup."""

    @pytest.mark.asyncio
    async def test_returns_tokens_for_caller(self, caller):
        mock_client = _mock_supabase([{"token": "tok-a"}, {"token": "tok-b"}])
        resolver = SupabaseRecipientResolver(client_factory=lambda _: mock_client)

        tokens = await resolver.resolve(caller)

        assert tokens == ["tok-a", "tok-b"]
        mock_client.table.assert_called_once_with(PUSH_TOKENS_TABLE)
        mock_table = mock_client.table.return_value
        mock_table.select.assert_called_once_with("token")
        mock_table.eq.assert_called_once_with("user_id", caller.user_id)

    @pytest.mark.asyncio
    async def test_client_built_for_caller(self, caller):
        factory = MagicMock(return_value=_mock_supabase([]))
        resolver = SupabaseRecipientResolver(client_factory=factory)

        await resolver.resolve(caller)

        factory.assert_called_once_with(caller)

    @pytest.mark.asyncio
    async def test_blank_tokens_are_filtered(self, caller):
        rows = [
            {"token": "tok-a"},
            {"token": ""},
            {"token": "   "},
            {"token": None},
            {"token": 12345},
            {},
            {"token": "tok-b"},
        ]
        resolver = SupabaseRecipientResolver(client_factory=lambda _: _mock_supabase(rows))

        assert await resolver.resolve(caller) == ["tok-a", "tok-b"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rows", [[], None])
    async def test_no_rows_is_empty_list(self, caller, rows):
        resolver = SupabaseRecipientResolver(client_factory=lambda _: _mock_supabase(rows))

        assert await resolver.resolve(caller) == []

    @pytest.mark.asyncio
    async def test_query_failure_raises_lookup_error(self, caller):
        mock_client = _mock_supabase(error=Exception("PGRST301: JWT expired"))
        resolver = SupabaseRecipientResolver(client_factory=lambda _: mock_client)

        with pytest.raises(RecipientLookupError) as exc_info:
            await resolver.resolve(caller)

        assert exc_info.value.status_code == 500
        assert "PGRST301" in exc_info.value.message


class TestGetCallerClient:
    """Tests for the caller-scoped Supabase client."""

    @patch("app.db.supabase_client.SUPABASE_URL", "https://example.supabase.co")
    @patch("app.db.supabase_client.SUPABASE_ANON_KEY", "anon-key")
    @patch("app.db.supabase_client.validate_supabase_config", return_value=True)
    @patch("app.db.supabase_client.create_client")
    def test_postgrest_uses_caller_token(self, mock_create, _mock_validate, caller):
        client = get_caller_client(caller)

        mock_create.assert_called_once_with("https://example.supabase.co", "anon-key")
        client.postgrest.auth.assert_called_once_with(caller.access_token.get_secret_value())

    @patch(
        "app.db.supabase_client.validate_supabase_config",
        side_effect=ConfigurationError("Missing required Supabase environment variables: SUPABASE_URL."),
    )
    def test_unconfigured_raises(self, _mock_validate, caller):
        with pytest.raises(ConfigurationError):
            get_caller_client(caller)

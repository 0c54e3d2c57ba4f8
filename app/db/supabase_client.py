"""
Supabase Client

Provides Supabase clients scoped to the calling user. The client is
created with the anon key and its PostgREST session is authorized with
the caller's own access token, so Row Level Security decides which
user_push_tokens rows are visible or writable.

A new client is built for every request; nothing is shared between
callers.
"""

from supabase import Client, create_client

from app.core.config import SUPABASE_ANON_KEY, SUPABASE_URL, validate_supabase_config
from app.models.credentials import AuthenticatedCaller


def get_caller_client(caller: AuthenticatedCaller) -> Client:
    """
    Get a Supabase client acting as the authenticated caller.

    Raises ConfigurationError if SUPABASE_URL or SUPABASE_ANON_KEY is unset.
    """
    validate_supabase_config()
    client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
    client.postgrest.auth(caller.access_token.get_secret_value())
    return client

"""
Application Configuration

Loads environment variables and provides typed settings
for the application. Uses python-dotenv to load from .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

from app.core.errors import ConfigurationError

# Load .env file from the project root
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)

# --- App Settings ---
API_V1_PREFIX = "/api/v1"
PROJECT_NAME = "Push Dispatch"

# --- Supabase (identity service + recipient store) ---
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")

# --- Firebase service account (FCM provider) ---
# Either the full service-account JSON blob, or the three discrete fields.
FIREBASE_SERVICE_ACCOUNT_JSON: str = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON", "")
FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "")
FIREBASE_CLIENT_EMAIL: str = os.getenv("FIREBASE_CLIENT_EMAIL", "")
FIREBASE_PRIVATE_KEY: str = os.getenv("FIREBASE_PRIVATE_KEY", "")


def validate_supabase_config() -> bool:
    """Check that the Supabase URL and anon key are present and non-empty."""
    missing = []
    if not SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not SUPABASE_ANON_KEY:
        missing.append("SUPABASE_ANON_KEY")
    if missing:
        raise ConfigurationError(
            f"Missing required Supabase environment variables: {', '.join(missing)}."
        )
    return True


def is_fcm_configured() -> bool:
    """
    Check if a Firebase service account is available without raising.

    True when the JSON blob is set, or when all three discrete
    fields are set. Whether the values actually parse is decided
    later by the service-account loader.
    """
    if FIREBASE_SERVICE_ACCOUNT_JSON:
        return True
    return bool(FIREBASE_PROJECT_ID and FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY)

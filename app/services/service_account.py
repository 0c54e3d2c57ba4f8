"""
Service Account Loader — Firebase credentials for FCM.

Accepts the credential in either of the two shapes Firebase hands out:
1. The full service-account JSON blob (FIREBASE_SERVICE_ACCOUNT_JSON)
2. Three discrete fields (FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL,
   FIREBASE_PRIVATE_KEY)

The private key is wrapped in a SecretStr on load and is never logged.
"""

import json
import logging

from pydantic import ValidationError

from app.core.config import (
    FIREBASE_CLIENT_EMAIL,
    FIREBASE_PRIVATE_KEY,
    FIREBASE_PROJECT_ID,
    FIREBASE_SERVICE_ACCOUNT_JSON,
)
from app.core.errors import ConfigurationError
from app.models.credentials import ServiceAccountCredential

logger = logging.getLogger(__name__)

_REQUIRED_JSON_FIELDS = ("project_id", "client_email", "private_key")


def load_service_account(
    *,
    service_account_json: str = "",
    project_id: str = "",
    client_email: str = "",
    private_key: str = "",
) -> ServiceAccountCredential:
    """
    Build a ServiceAccountCredential from configuration values.

    The JSON blob wins when present. Otherwise all three discrete
    fields must be non-empty.

    Raises:
        ConfigurationError: If neither form is complete, or the JSON
            blob cannot be parsed.
    """
    if service_account_json:
        credential = _from_json_blob(service_account_json)
    else:
        missing = []
        if not project_id:
            missing.append("FIREBASE_PROJECT_ID")
        if not client_email:
            missing.append("FIREBASE_CLIENT_EMAIL")
        if not private_key:
            missing.append("FIREBASE_PRIVATE_KEY")
        if missing:
            raise ConfigurationError(
                "Firebase service account not configured. Set "
                "FIREBASE_SERVICE_ACCOUNT_JSON or all of: "
                f"{', '.join(missing)}"
            )
        credential = ServiceAccountCredential(
            project_id=project_id,
            client_email=client_email,
            private_key=private_key,
        )

    logger.debug(
        "Loaded Firebase service account (project=%s, client=%s)",
        credential.project_id,
        credential.client_email,
    )
    return credential


def load_configured_service_account() -> ServiceAccountCredential:
    """Load the service account from the FIREBASE_* environment settings."""
    return load_service_account(
        service_account_json=FIREBASE_SERVICE_ACCOUNT_JSON,
        project_id=FIREBASE_PROJECT_ID,
        client_email=FIREBASE_CLIENT_EMAIL,
        private_key=FIREBASE_PRIVATE_KEY,
    )


def _from_json_blob(raw: str) -> ServiceAccountCredential:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        # The blob holds the key, so the decoder message (which quotes it) is dropped.
        raise ConfigurationError(
            f"FIREBASE_SERVICE_ACCOUNT_JSON is not valid JSON (line {exc.lineno})"
        ) from None

    if not isinstance(parsed, dict):
        raise ConfigurationError("FIREBASE_SERVICE_ACCOUNT_JSON must be a JSON object")

    missing = [field for field in _REQUIRED_JSON_FIELDS if not parsed.get(field)]
    if missing:
        raise ConfigurationError(
            f"FIREBASE_SERVICE_ACCOUNT_JSON is missing: {', '.join(missing)}"
        )

    # Field values are never echoed: private_key is one of them.
    invalid = [field for field in _REQUIRED_JSON_FIELDS if not isinstance(parsed[field], str)]
    if invalid:
        raise ConfigurationError(
            f"FIREBASE_SERVICE_ACCOUNT_JSON has invalid fields: {', '.join(invalid)}"
        )

    try:
        return ServiceAccountCredential(
            project_id=parsed["project_id"],
            client_email=parsed["client_email"],
            private_key=parsed["private_key"],
        )
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        raise ConfigurationError(
            f"FIREBASE_SERVICE_ACCOUNT_JSON has invalid fields: {', '.join(fields)}"
        ) from None

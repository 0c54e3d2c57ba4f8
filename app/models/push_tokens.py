"""
Push Token Models — Pydantic schemas for device token registration.

Defines request/response models for:
- POST /api/v1/users/push-token — Save or refresh an FCM device token
- DELETE /api/v1/users/push-token — Remove an FCM device token
"""

from pydantic import BaseModel, Field

# Measured in UTF-8 bytes.
MAX_TOKEN_LENGTH = 4096


class UpsertPushTokenRequest(BaseModel):
    """
    Payload for POST /api/v1/users/push-token.

    Sent by the mobile app whenever FCM hands it a new registration
    token. One user may register several devices.
    """

    token: str = Field(..., description="FCM registration token.")
    platform: str | None = Field(
        default=None,
        description="Device platform reported by the app (e.g. 'ios', 'android').",
    )


class DeletePushTokenRequest(BaseModel):
    """Payload for DELETE /api/v1/users/push-token."""

    token: str = Field(..., description="FCM registration token to remove.")


class PushTokenResponse(BaseModel):
    """Response for both push-token endpoints."""

    ok: bool = True

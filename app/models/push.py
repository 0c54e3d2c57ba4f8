"""
Push Models — Pydantic schemas for the push dispatch endpoint.

Defines the inbound notification request, the per-endpoint delivery
outcome, the aggregated dispatch result, and the JSON response shapes
returned by POST /api/v1/push/send.
"""

from pydantic import BaseModel, Field, field_validator

# Title used when the caller does not supply one (the app's display name).
DEFAULT_NOTIFICATION_TITLE = "ガチトレ"

# Longer bodies are cut to this many UTF-16 code units and suffixed with an ellipsis.
MAX_BODY_LENGTH = 180
ELLIPSIS = "…"

NO_TOKENS_REASON = "no_tokens"


def _utf16_units(char: str) -> int:
    return 2 if ord(char) > 0xFFFF else 1


def truncate_body(body: str) -> str:
    """
    Cut a notification body to MAX_BODY_LENGTH UTF-16 code units plus an ellipsis.

    Length is measured as JavaScript measures string length, so an emoji
    counts as two units. A surrogate pair that would straddle the limit is
    dropped whole rather than split.
    """
    units = 0
    for index, char in enumerate(body):
        units += _utf16_units(char)
        if units > MAX_BODY_LENGTH:
            return body[:index] + ELLIPSIS
    return body


class NotificationRequest(BaseModel):
    """
    Payload for POST /api/v1/push/send.

    Only `body` is required. `data` is passed through to the device
    untouched, so FCM's string-to-string requirement is enforced here.
    """

    title: str | None = Field(
        default=None,
        description="Notification title. Defaults to the app name.",
    )
    body: str = Field(
        ...,
        description="Notification body text. Must not be blank.",
    )
    data: dict[str, str] | None = Field(
        default=None,
        description="Opaque key/value pairs delivered alongside the notification.",
    )

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        """Reject empty or whitespace-only bodies."""
        if not v.strip():
            raise ValueError("body is required")
        return v

    @property
    def effective_title(self) -> str:
        return self.title if self.title is not None else DEFAULT_NOTIFICATION_TITLE

    @property
    def effective_body(self) -> str:
        return truncate_body(self.body)


class DeliveryOutcome(BaseModel):
    """Result of sending to a single device token."""

    endpoint: str
    success: bool
    error: str | None = None


class DispatchResult(BaseModel):
    """Aggregate of all outcomes for one dispatch."""

    sent: int = 0
    failed: int = 0
    reason: str | None = None
    outcomes: list[DeliveryOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[DeliveryOutcome]) -> "DispatchResult":
        sent = sum(1 for outcome in outcomes if outcome.success)
        return cls(sent=sent, failed=len(outcomes) - sent, outcomes=outcomes)

    @classmethod
    def no_tokens(cls) -> "DispatchResult":
        return cls(sent=0, failed=0, reason=NO_TOKENS_REASON)


class PushSendResponse(BaseModel):
    """
    Response for POST /api/v1/push/send.

    `failed` is omitted when no tokens were found, `reason` is omitted
    otherwise. Per-endpoint errors are never included.
    """

    ok: bool = True
    sent: int
    failed: int | None = None
    reason: str | None = None

    @classmethod
    def from_result(cls, result: DispatchResult) -> "PushSendResponse":
        if result.reason is not None:
            return cls(sent=result.sent, reason=result.reason)
        return cls(sent=result.sent, failed=result.failed)


class ErrorResponse(BaseModel):
    """Body of every ok:false response."""

    ok: bool = False
    error: str

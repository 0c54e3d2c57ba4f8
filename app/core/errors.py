"""
Error taxonomy for the push dispatch service.

Every fatal failure is a PushServiceError carrying the HTTP status it
maps to. The exception handler in app.main turns these into
{"ok": false, "error": <message>} responses.

DeliveryError is the exception: it describes a single endpoint's
failure and is recorded in a DeliveryOutcome, never surfaced over HTTP.
"""


class PushServiceError(Exception):
    """Base class for errors that end a request with a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(PushServiceError):
    """Service-account or Supabase settings are missing or malformed."""

    status_code = 503


class UnauthorizedError(PushServiceError):
    """
    The caller's bearer credential is missing or was not accepted.

    The message is always the same generic string so the response
    never reveals which check failed.
    """

    status_code = 401

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class BodyValidationError(PushServiceError):
    """The request body is missing required fields or has the wrong shape."""

    status_code = 400


class CryptoError(PushServiceError):
    """The private key could not be parsed or the assertion could not be signed."""

    status_code = 500


class TokenExchangeError(PushServiceError):
    """The provider's token endpoint rejected the signed assertion."""

    status_code = 500

    def __init__(
        self,
        message: str,
        provider_status: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.body = body


class RecipientLookupError(PushServiceError):
    """The recipient store could not be queried."""

    status_code = 500


class PushTokenStoreError(PushServiceError):
    """A push token could not be saved or removed."""

    status_code = 500


class DeliveryError(Exception):
    """A single endpoint delivery failed. Isolated to that endpoint."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.message = message

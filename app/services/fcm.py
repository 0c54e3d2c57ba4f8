"""
FCM Push Service — fan-out delivery via the Firebase Cloud Messaging HTTP v1 API.

Sends one notification to every device token a user has registered.
Each token is delivered independently: a rejected or unreachable token
is recorded as a failed DeliveryOutcome and never stops delivery to the
rest. Only the aggregate counts leave this module.

Flow for one dispatch:
1. Resolve the caller's device tokens (none -> "no_tokens", nothing sent)
2. Mint one FCM access token for the whole fan-out
3. POST {"message": {...}} for every token, concurrently
4. Reduce the outcomes to sent / failed counts

Failed deliveries are not retried.
"""

import asyncio
import logging

import httpx

from app.core.errors import DeliveryError
from app.models.credentials import AccessToken, AuthenticatedCaller
from app.models.push import DeliveryOutcome, DispatchResult, NotificationRequest
from app.services.recipients import RecipientResolver
from app.services.token_exchange import HTTP_TIMEOUT_SECONDS, ProviderCredentialMinter

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

# Upper bound on in-flight sends for a single dispatch.
MAX_CONCURRENT_SENDS = 10


# ===================================================================
# Message Builder
# ===================================================================

def build_fcm_message(
    *,
    token: str,
    title: str,
    body: str,
    data: dict[str, str] | None = None,
) -> dict:
    """
    Build the FCM v1 request body for a single device.

    Returns:
        dict: {"message": {"token", "notification": {"title", "body"}, "data"}}
    """
    return {
        "message": {
            "token": token,
            "notification": {
                "title": title,
                "body": body,
            },
            "data": data or {},
        },
    }


# ===================================================================
# Single Delivery
# ===================================================================

async def send_fcm_message(
    client: httpx.AsyncClient,
    *,
    project_id: str,
    access_token: AccessToken,
    message: dict,
) -> None:
    """
    Send one message to FCM.

    Raises:
        DeliveryError: On a non-2xx response (the body becomes the error
            message) or a transport failure.
    """
    endpoint = message["message"]["token"]
    try:
        response = await client.post(
            FCM_SEND_URL.format(project_id=project_id),
            json=message,
            headers={
                "Authorization": f"Bearer {access_token.value.get_secret_value()}",
            },
            timeout=HTTP_TIMEOUT_SECONDS,
        )
    except httpx.RequestError as exc:
        raise DeliveryError(endpoint, f"FCM send failed: {exc}") from exc

    if not response.is_success:
        raise DeliveryError(
            endpoint,
            f"FCM send failed: {response.status_code} {response.text}",
        )


# ===================================================================
# Fan-out Dispatcher
# ===================================================================

class PushDispatcher:
    """
    Delivers a NotificationRequest to every device a caller owns.

    Usage:
        dispatcher = PushDispatcher(resolver, minter)
        result = await dispatcher.dispatch(caller, request)
        result.sent, result.failed
    """

    def __init__(
        self,
        resolver: RecipientResolver,
        minter: ProviderCredentialMinter,
        max_concurrency: int = MAX_CONCURRENT_SENDS,
    ) -> None:
        self._resolver = resolver
        self._minter = minter
        self._max_concurrency = max_concurrency

    async def dispatch(
        self,
        caller: AuthenticatedCaller,
        request: NotificationRequest,
    ) -> DispatchResult:
        """
        Resolve the caller's tokens and fan the notification out to all of them.

        Returns:
            DispatchResult with sent/failed counts, or reason="no_tokens"
            when the caller has no registered devices.

        Raises:
            RecipientLookupError: If the token lookup fails.
            ConfigurationError, CryptoError, TokenExchangeError: If no
                provider access token can be obtained.
        """
        tokens = await self._resolver.resolve(caller)
        if not tokens:
            logger.info(
                "No push tokens registered for user %s — skipping delivery",
                caller.user_id[:8],
            )
            return DispatchResult.no_tokens()

        title = request.effective_title
        body = request.effective_body
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async with httpx.AsyncClient() as client:
            access_token = await self._minter.mint_access_token(client)

            async def _deliver(token: str) -> None:
                message = build_fcm_message(
                    token=token, title=title, body=body, data=request.data,
                )
                async with semaphore:
                    await send_fcm_message(
                        client,
                        project_id=self._minter.project_id,
                        access_token=access_token,
                        message=message,
                    )

            # return_exceptions keeps one endpoint's failure from cancelling the others
            results = await asyncio.gather(
                *(_deliver(token) for token in tokens),
                return_exceptions=True,
            )

        outcomes = [
            self._to_outcome(token, error)
            for token, error in zip(tokens, results)
        ]
        result = DispatchResult.from_outcomes(outcomes)
        logger.info(
            "Push dispatch for user %s: sent=%d, failed=%d",
            caller.user_id[:8], result.sent, result.failed,
        )
        return result

    @staticmethod
    def _to_outcome(token: str, error: BaseException | None) -> DeliveryOutcome:
        if error is None:
            return DeliveryOutcome(endpoint=token, success=True)

        message = error.message if isinstance(error, DeliveryError) else str(error)
        logger.warning(
            "Push delivery failed: device=%s..., error=%s",
            token[:16], message,
        )
        return DeliveryOutcome(endpoint=token, success=False, error=message)

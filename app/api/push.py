"""
Push API — send a notification to every device the caller has registered.

POST /api/v1/push/send

Request processing order:
1. Authenticate the caller (401 on any failure)
2. Require a JSON content type (400, plain text)
3. Validate the body (400 "body is required")
4. Resolve tokens and fan out (200 with sent/failed counts)

Partial delivery failure is still a 200: the response reports how many
devices were reached, not which ones failed.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from app.core.errors import BodyValidationError
from app.core.security import get_authenticated_caller
from app.models.credentials import AuthenticatedCaller
from app.models.push import NotificationRequest, PushSendResponse
from app.services.fcm import PushDispatcher
from app.services.recipients import SupabaseRecipientResolver
from app.services.service_account import load_configured_service_account
from app.services.token_exchange import FcmCredentialMinter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/push", tags=["push"])


def get_push_dispatcher() -> PushDispatcher:
    """FastAPI dependency wiring the dispatcher to Supabase and FCM."""
    return PushDispatcher(
        resolver=SupabaseRecipientResolver(),
        minter=FcmCredentialMinter(load_configured_service_account),
    )


def parse_notification_request(payload: object) -> NotificationRequest:
    """
    Validate a decoded JSON body.

    A missing or blank `body` gets its own message; any other shape
    problem is reported generically.

    Raises:
        BodyValidationError: If the payload is not a valid NotificationRequest.
    """
    if not isinstance(payload, dict):
        raise BodyValidationError("invalid request body")

    body = payload.get("body")
    if not isinstance(body, str) or not body.strip():
        raise BodyValidationError("body is required")

    try:
        return NotificationRequest.model_validate(payload)
    except ValidationError as exc:
        logger.info("Rejected push request body: %s", exc.errors()[0].get("msg"))
        raise BodyValidationError("invalid request body") from exc


@router.post(
    "/send",
    status_code=status.HTTP_200_OK,
    response_model=PushSendResponse,
    response_model_exclude_none=True,
)
async def send_push(
    request: Request,
    caller: AuthenticatedCaller = Depends(get_authenticated_caller),
    dispatcher: PushDispatcher = Depends(get_push_dispatcher),
):
    """
    Deliver a push notification to all of the caller's devices.

    Returns:
        200: {"ok": true, "sent": n, "failed": m}, or
             {"ok": true, "sent": 0, "reason": "no_tokens"}.
        400: Wrong content type (plain text) or invalid body.
        401: Missing or invalid authentication token.
        500: Token lookup, signing, or token exchange failed.
        503: Firebase service account not configured.
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        return PlainTextResponse(
            "Bad Request: expected application/json",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        payload = await request.json()
    except ValueError as exc:
        raise BodyValidationError("invalid request body") from exc

    notification = parse_notification_request(payload)
    result = await dispatcher.dispatch(caller, notification)
    return PushSendResponse.from_result(result)

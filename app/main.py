"""
Push Dispatch Backend — FastAPI Entry Point

This is the main application module for the push dispatch backend.
It initializes the FastAPI app, registers the route handlers, and maps
the service's exceptions onto {"ok": false, "error": ...} responses.

Run with: uvicorn app.main:app
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.push import router as push_router
from app.api.push_tokens import router as push_tokens_router
from app.core.config import is_fcm_configured
from app.core.errors import PushServiceError
from app.core.security import get_authenticated_caller
from app.models.credentials import AuthenticatedCaller
from app.models.push import ErrorResponse

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Push Dispatch API",
    description="Authenticated FCM push notification fan-out",
    version="0.1.0",
)

# --- Register API routers ---
app.include_router(push_router)
app.include_router(push_tokens_router)

if not is_fcm_configured():
    logger.warning(
        "Firebase service account not configured. Push delivery will return 503 "
        "until FIREBASE_SERVICE_ACCOUNT_JSON or the FIREBASE_* fields are set."
    )


@app.exception_handler(PushServiceError)
async def push_service_error_handler(request: Request, exc: PushServiceError) -> JSONResponse:
    """Render every known failure with the status its category maps to."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Schema validation failures are 400s with a generic message."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="invalid request body").model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is still a JSON body with ok:false."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@app.get("/health")
async def health_check():
    """Health check endpoint. Returns service status."""
    return {"status": "ok"}


@app.get("/api/v1/me")
async def get_current_user(caller: AuthenticatedCaller = Depends(get_authenticated_caller)):
    """
    Protected endpoint. Returns the authenticated caller's user ID.

    Used to verify that a Supabase session token is accepted before
    registering push tokens.
    """
    return {"user_id": caller.user_id}

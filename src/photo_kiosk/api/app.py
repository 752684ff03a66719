"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from photo_kiosk.app_logging import configure_logging
from photo_kiosk.containers import AppContainer
from photo_kiosk.domain.transform import TransformRequest
from photo_kiosk.errors import (
    FieldError,
    KioskError,
    RateLimited,
    UpstreamUnavailable,
    ValidationError,
)
from photo_kiosk.services.validation import Operation, require_valid

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(KioskError)
    async def kiosk_error_handler(_: Request, exc: KioskError) -> JSONResponse:
        return _error_response(exc)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.options("/transform")
    @app.options("/deliver")
    async def preflight() -> Response:
        """Answer bare pre-flight requests with an empty success."""
        return Response(status_code=200)

    @app.post("/transform")
    async def transform(request: Request) -> dict[str, str]:
        """Validate, rate limit by caller address, then edit the photo."""
        state_container: AppContainer = request.app.state.container
        payload = require_valid(Operation.TRANSFORM, await _read_json(request))
        caller = _caller_address(request)
        state_container.transform_limiter.check(caller)
        session_id = str(payload.session_id) if payload.session_id else None
        try:
            result = await state_container.transform_service.transform(
                TransformRequest(
                    image_url=payload.image_url,
                    instruction=payload.prompt,
                    session_id=session_id,
                )
            )
        except KioskError:
            raise
        except Exception as exc:
            logger.exception("Error in transform", extra={"session_id": session_id})
            raise UpstreamUnavailable(str(exc)) from exc
        return {"editedImageUrl": result.image_url}

    @app.post("/deliver")
    async def deliver(request: Request) -> dict[str, str]:
        """Validate, rate limit by session, then record and email the photo."""
        state_container: AppContainer = request.app.state.container
        payload = require_valid(Operation.DELIVER, await _read_json(request))
        session_id = str(payload.session_id)
        state_container.deliver_limiter.check(session_id)
        try:
            receipt = await state_container.delivery_service.deliver(payload)
        except KioskError:
            raise
        except Exception as exc:
            logger.exception("Error in deliver", extra={"session_id": session_id})
            raise UpstreamUnavailable(str(exc)) from exc
        return {"id": receipt.message_id}

    return app


async def _read_json(request: Request) -> object:
    """Return the decoded JSON body or raise a body-level validation error."""
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationError(
            [FieldError(field="body", message="Request body must be valid JSON")]
        ) from exc


def _caller_address(request: Request) -> str:
    """Best-effort network identity of the caller for rate limiting."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _error_response(exc: KioskError) -> JSONResponse:
    """Render a taxonomy error without leaking upstream detail."""
    body: dict[str, object] = {"error": exc.public_message}
    headers: dict[str, str] = {}
    if isinstance(exc, ValidationError):
        body["details"] = [error.to_dict() for error in exc.errors]
    if isinstance(exc, RateLimited):
        retry_after = max(1, round(exc.retry_after))
        body["retryAfter"] = retry_after
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

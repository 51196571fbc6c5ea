"""Mission Compréhension HTTP service.

Serves the single assessment session under /api/v1/session and a health
check under /api/v1/health. Every error leaves the service in the same
``{"ok": false, "error": {"code", "message"}}`` shape that successful
calls use for their data, so the browser only ever parses one envelope.

Run with: uvicorn comprehension.main:app --reload
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from comprehension.config import Settings, get_settings
from comprehension.schemas import ApiError, ApiResponse
from comprehension.session import InvalidTransition

logger = logging.getLogger("comprehension")

UNEXPECTED_ERROR = "Une erreur inattendue est survenue."


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    body = ApiResponse(ok=False, error=ApiError(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware:
    """One INFO line per HTTP request: ``METHOD path status duration``.

    Bodies stay out of the log since they hold the pupil's photo and
    written answers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        status = 0

        async def send_and_record(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_and_record)
        finally:
            elapsed = (time.monotonic() - started) * 1000
            logger.info("%s %s %d %.1fms", scope["method"], scope["path"], status, elapsed)


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


def _http_exception_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Session routes raise with a ready envelope as detail.
    if isinstance(exc.detail, dict) and "ok" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reports the first invalid field as ``body -> firstName: <reason>``."""
    problems = exc.errors()
    if not problems:
        return _error(422, "VALIDATION_ERROR", "Requête invalide.")

    field = " -> ".join(str(part) for part in problems[0].get("loc", ()))
    reason = problems[0].get("msg", "invalid value")
    return _error(422, "VALIDATION_ERROR", f"{field}: {reason}" if field else reason)


def _invalid_transition_response(request: Request, exc: InvalidTransition) -> JSONResponse:
    return _error(409, "INVALID_TRANSITION", exc.message)


def _unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    return _error(500, "INTERNAL_ERROR", UNEXPECTED_ERROR)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def _init_services(settings: Settings) -> None:
    """Builds the Gateway and the session for the configured AI backend.

    A backend that cannot be built (unknown name, SDK error) leaves both
    singletons unset: the app still starts and session routes answer 503.
    """
    from comprehension.api import deps
    from comprehension.session import SessionOrchestrator

    if settings.ai_backend == "gemini" and not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is empty: every model call will be rejected")

    try:
        gateway = deps.create_gateway(settings)
    except Exception:
        logger.warning(
            "No LLM client for AI_BACKEND=%r, sessions disabled",
            settings.ai_backend,
            exc_info=True,
        )
        return

    deps._gateway = gateway
    deps._orchestrator = SessionOrchestrator(gateway)
    logger.info(
        "Session ready on %s (assessment=%s, evaluator=%s, feedback=%s)",
        settings.ai_backend,
        settings.assessment_model,
        settings.evaluator_model,
        settings.feedback_model,
    )


def _api_router() -> APIRouter:
    from comprehension.api.session import router as session_router

    v1 = APIRouter(prefix="/api/v1")

    @v1.get("/health")
    async def health() -> dict[str, Any]:
        return ApiResponse(ok=True, data={"status": "healthy"}).model_dump()

    v1.include_router(session_router, prefix="/session", tags=["session"])
    return v1


def create_app(settings: Settings | None = None) -> FastAPI:
    """Assembles the service; ``settings`` defaults to the environment."""
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    application = FastAPI(
        title="Mission Compréhension",
        description="Reading-comprehension assessment from a photographed text",
        version="0.1.0",
    )

    # Added last, so the access log wraps CORS too.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    for exc_class, handler in (
        (StarletteHTTPException, _http_exception_response),
        (RequestValidationError, _validation_error_response),
        (InvalidTransition, _invalid_transition_response),
        (Exception, _unhandled_exception_response),
    ):
        application.add_exception_handler(exc_class, handler)

    application.include_router(_api_router())
    _init_services(settings)
    return application


app = create_app()

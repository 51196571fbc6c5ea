"""Shared FastAPI dependencies: LLM client, Gateway and session injection.

Module-level singletons for the Gateway and the single in-memory session.
Route handlers access them via FastAPI's Depends() system, never by
importing the singletons directly. Tests swap them by assigning the
module attributes.

Tier 2 service module: imports from ai/* (Tier 2), session (Tier 3 core),
config (Tier 2), schemas (Tier 1).

Usage:
    from comprehension.api.deps import get_orchestrator

    @router.get("/something")
    async def do_thing(session: SessionOrchestrator = Depends(get_orchestrator)): ...
"""

import dataclasses
import logging

from fastapi import HTTPException

from comprehension.ai.gateway import Gateway
from comprehension.ai.providers.base import LLMClient
from comprehension.config import Settings
from comprehension.models import ModelConfig, resolve_tier
from comprehension.schemas import ApiError, ApiResponse
from comprehension.session import SessionOrchestrator

logger = logging.getLogger("comprehension")

# ---------------------------------------------------------------------------
# Singletons: set by _init_services() in main.py at startup
# ---------------------------------------------------------------------------

_gateway: Gateway | None = None
_orchestrator: SessionOrchestrator | None = None


def _unavailable(what: str) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail=ApiResponse(
            ok=False,
            error=ApiError(
                code="SERVICE_UNAVAILABLE",
                message=f"{what} is not available. Check the AI configuration.",
            ),
        ).model_dump(),
    )


def get_gateway() -> Gateway:
    """Returns the Gateway singleton.

    Raises HTTPException(503) if no LLM client could be created at startup.
    """
    if _gateway is None:
        raise _unavailable("LLM gateway")
    return _gateway


def get_orchestrator() -> SessionOrchestrator:
    """Returns the session singleton.

    Raises HTTPException(503) if startup did not create it.
    """
    if _orchestrator is None:
        raise _unavailable("Session")
    return _orchestrator


# ---------------------------------------------------------------------------
# Client / Gateway factory
# ---------------------------------------------------------------------------


def create_client(settings: Settings) -> LLMClient:
    """Routes AI_BACKEND to the correct concrete LLM client.

    Raises:
        ValueError: If the backend name is not recognized.
    """
    # Local imports to avoid pulling SDK dependencies at module load time.
    if settings.ai_backend == "gemini":
        from comprehension.ai.providers.gemini import GeminiClient

        return GeminiClient(api_key=settings.gemini_api_key)

    if settings.ai_backend == "mock":
        from comprehension.ai.providers.mock import MockClient, demo_responder

        return MockClient(responder=demo_responder)

    raise ValueError(
        f"Unknown AI backend: {settings.ai_backend!r}. "
        f"Expected 'gemini' or 'mock'."
    )


def _with_model(tier: str, model_id: str) -> ModelConfig:
    return dataclasses.replace(resolve_tier(tier), model_id=model_id)


def create_gateway(settings: Settings) -> Gateway:
    """Builds a Gateway with the models chosen in settings."""
    return Gateway(
        create_client(settings),
        assessment_config=_with_model("vision", settings.assessment_model),
        evaluation_config=_with_model("fast", settings.evaluator_model),
        feedback_config=_with_model("creative", settings.feedback_model),
    )

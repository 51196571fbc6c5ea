"""Google Gemini LLM client using the google-genai SDK.

Implements the LLMClient contract for Google's Gemini model family.
Builds a single multimodal user turn, switches on JSON mode when asked,
and retries transient errors with exponential backoff.

Tier 2 service: imports from base.py (Tier 1) + google-genai SDK.
"""

import asyncio
import base64
import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from comprehension.ai.providers.base import InlineImage, LLMClient
from comprehension.models import ModelConfig

logger = logging.getLogger(__name__)

_MAX_RETRIES = 2  # 3 total attempts
_BACKOFF_BASE = 1.0  # seconds, doubles each retry


def _is_retryable(exc: Exception) -> bool:
    """Checks whether an SDK error is transient and worth retrying.

    Retries on:
    - ClientError with code 429 (rate limit)
    - Any ServerError (500, 502, 503, etc.)

    All other errors (400 bad request, 403 auth, etc.) propagate immediately.
    """
    if isinstance(exc, genai_errors.ServerError):
        return True
    if isinstance(exc, genai_errors.ClientError) and exc.code == 429:
        return True
    return False


def _build_contents(prompt: str, image: InlineImage | None) -> list[types.Content]:
    """Builds the single user turn: prompt text first, then the image."""
    parts = [types.Part(text=prompt)]
    if image is not None:
        parts.append(
            types.Part.from_bytes(
                data=base64.b64decode(image.data),
                mime_type=image.mime_type,
            )
        )
    return [types.Content(role="user", parts=parts)]


def _build_config(
    model_config: ModelConfig,
    response_mime_type: str | None,
    response_schema: dict[str, Any] | None,
) -> types.GenerateContentConfig:
    """Builds the GenerateContentConfig for a Gemini API call."""
    config = types.GenerateContentConfig(temperature=model_config.temperature)

    if response_mime_type is not None:
        config.response_mime_type = response_mime_type
    if response_schema is not None:
        config.response_json_schema = response_schema
    if model_config.thinking_budget is not None:
        config.thinking_config = types.ThinkingConfig(
            thinking_budget=model_config.thinking_budget,
        )

    return config


class GeminiClient(LLMClient):
    """Gemini LLM client using the google-genai SDK.

    Retries transient errors (429, 5xx) with exponential backoff and
    returns the SDK's GenerateContentResponse untouched.

    Args:
        api_key: Google API key for Gemini access.
    """

    def __init__(self, api_key: str) -> None:
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(
                retry_options=types.HttpRetryOptions(attempts=1),
            ),
        )

    async def generate(
        self,
        *,
        prompt: str,
        model_config: ModelConfig,
        image: InlineImage | None = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> Any:
        """Sends one request to Gemini and returns the raw response.

        Retries on transient errors (429, 5xx) with exponential backoff.

        Args:
            prompt: The full user prompt.
            model_config: Model ID and sampling configuration.
            image: Optional inline image to attach after the prompt.
            response_mime_type: "application/json" to request JSON mode.
            response_schema: Optional JSON Schema constraining JSON output.

        Returns:
            The google-genai GenerateContentResponse.
        """
        contents = _build_contents(prompt, image)
        config = _build_config(model_config, response_mime_type, response_schema)

        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES + 1):
            if attempt > 0:
                backoff = _BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(
                    "Gemini retry %d/%d after %.1fs backoff",
                    attempt,
                    _MAX_RETRIES,
                    backoff,
                )
                await asyncio.sleep(backoff)
            try:
                return await self._client.aio.models.generate_content(
                    model=model_config.model_id,
                    contents=contents,
                    config=config,
                )
            except (genai_errors.ClientError, genai_errors.ServerError) as exc:
                if not _is_retryable(exc) or attempt == _MAX_RETRIES:
                    raise
                last_exc = exc

        # Should not reach here, but just in case
        if last_exc is not None:  # pragma: no cover
            raise last_exc
        raise RuntimeError("Unreachable")  # pragma: no cover

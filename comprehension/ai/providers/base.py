"""Base LLM client interface and the value types it exchanges.

Defines the contract every client implementation (Gemini, Mock) must
satisfy. The Gateway treats the returned response object as opaque and
normalizes it through ai.extraction, so a client may hand back whatever
shape its SDK produces.

Tier 1 leaf: imports only stdlib and comprehension.models (also Tier 1).
No schemas, no config, no framework imports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from comprehension.models import ModelConfig


@dataclass(frozen=True)
class InlineImage:
    """An image sent inline with a prompt.

    ``data`` is base64 text without any ``data:`` URL header.
    """

    mime_type: str
    data: str


@dataclass(frozen=True)
class UsageInfo:
    """Token usage from a completed LLM call, used for usage logging."""

    prompt_tokens: int
    completion_tokens: int


class LLMClient(ABC):
    """Abstract base for LLM clients.

    Concrete implementations (GeminiClient, MockClient) send one user turn,
    optionally with an inline image, and return the provider's raw
    response.
    """

    @abstractmethod
    async def generate(
        self,
        *,
        prompt: str,
        model_config: ModelConfig,
        image: InlineImage | None = None,
        response_mime_type: str | None = None,
        response_schema: dict[str, Any] | None = None,
    ) -> Any:
        """Sends one request and returns the raw provider response.

        Args:
            prompt: The full user prompt.
            model_config: Model ID and sampling configuration.
            image: Optional inline image to attach after the prompt.
            response_mime_type: "application/json" to request JSON mode.
            response_schema: Optional JSON Schema constraining JSON output.

        Returns:
            The provider's response object, in whatever shape it uses.
        """

"""Model ID registry: single source of truth for AI model identifiers.

Every Gateway call resolves its model ID through this module. The rest of
the codebase imports family-name constants from here: no raw model ID
strings anywhere else.

Two-layer abstraction:
  Layer 1: Gateway operation picks a capability tier ("vision", "fast")
  Layer 2: Model ID constants (updated when Google releases new versions)

Env vars (ASSESSMENT_MODEL, EVALUATOR_MODEL, FEEDBACK_MODEL) carry family
names which config.py resolves through MODEL_MAP.
"""

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Layer 2: Model IDs
# ---------------------------------------------------------------------------

GEMINI_FLASH_LITE: str = "gemini-2.0-flash-lite"
GEMINI_FLASH: str = "gemini-2.0-flash"
GEMINI_FLASH_25: str = "gemini-2.5-flash"
GEMINI_PRO: str = "gemini-2.5-pro"


# ---------------------------------------------------------------------------
# ModelConfig: everything a provider needs for one call
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelConfig:
    """Bundles provider-specific configuration for one Gateway operation.

    Tier 1 leaf: no project imports. Consumed by LLMClient implementations.
    """

    provider: str          # "gemini" or "mock"
    model_id: str          # e.g. "gemini-2.0-flash"
    thinking_budget: int | None = None  # None = model default
    temperature: float = 0.4


# ---------------------------------------------------------------------------
# Layer 1: Capability tier → ModelConfig
# ---------------------------------------------------------------------------
# Transcription needs the multimodal model at low temperature so the text
# is copied, not paraphrased. Correction and final feedback run on Flash.

TIER_MAP: dict[str, ModelConfig] = {
    "vision": ModelConfig(provider="gemini", model_id=GEMINI_FLASH, temperature=0.1),
    "fast": ModelConfig(provider="gemini", model_id=GEMINI_FLASH, temperature=0.3),
    "creative": ModelConfig(provider="gemini", model_id=GEMINI_FLASH, temperature=0.8),
}


def resolve_tier(tier: str) -> ModelConfig:
    """Resolves a capability tier name to its ModelConfig.

    Raises:
        KeyError: If the tier name is not found in TIER_MAP.
    """
    return TIER_MAP[tier]


# ---------------------------------------------------------------------------
# Lookup map: env var value → actual model ID
# ---------------------------------------------------------------------------
# Keys match the constant names exactly (case-sensitive).
MODEL_MAP: dict[str, str] = {
    "GEMINI_FLASH_LITE": GEMINI_FLASH_LITE,
    "GEMINI_FLASH": GEMINI_FLASH,
    "GEMINI_FLASH_25": GEMINI_FLASH_25,
    "GEMINI_PRO": GEMINI_PRO,
}

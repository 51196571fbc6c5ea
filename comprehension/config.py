"""App configuration: environment variable loading with typed defaults.

Loads settings from .env file (via python-dotenv) and os.environ.
Real environment variables take precedence over .env file values.

Model name env vars (e.g. EVALUATOR_MODEL=GEMINI_FLASH) are resolved to
actual API model IDs at load time via MODEL_MAP from comprehension.models.

The Gemini credential is read from GEMINI_API_KEY. The front-end build
variable VITE_GEMINI_API_KEY and the SDK's GOOGLE_API_KEY are accepted as
fallbacks, in that order.

Usage:
    from comprehension.config import get_settings
    settings = get_settings()
    print(settings.evaluator_model)  # "gemini-2.0-flash"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from comprehension.models import MODEL_MAP

# Only load .env from the project root, never from parent directories.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DOTENV_PATH = PROJECT_ROOT / ".env"

_API_KEY_VARS = ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY", "GOOGLE_API_KEY")


@dataclass(frozen=True)
class Settings:
    """Typed configuration for the comprehension service.

    All fields have sensible defaults for local development.
    Model fields store resolved API model IDs (not family names).
    """

    # App
    app_env: str
    app_port: int
    log_level: str
    cors_origins: list[str]

    # AI
    ai_backend: str
    assessment_model: str
    evaluator_model: str
    feedback_model: str
    gemini_api_key: str


def _resolve_model(env_var: str, value: str) -> str:
    """Resolves a family-name string to an actual model ID via MODEL_MAP.

    Args:
        env_var: Name of the environment variable (for error messages).
        value: The family-name value from the environment (e.g. "GEMINI_FLASH").

    Returns:
        The resolved model ID string.

    Raises:
        ValueError: If the value doesn't match any key in MODEL_MAP.
    """
    if value in MODEL_MAP:
        return MODEL_MAP[value]
    valid = ", ".join(sorted(MODEL_MAP.keys()))
    raise ValueError(
        f"Invalid value for {env_var}: {value!r}. "
        f"Valid options: {valid}"
    )


def _split_csv(value: str) -> list[str]:
    """Splits a comma-separated string into a list of stripped, non-empty values."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _first_api_key() -> str:
    """Returns the first non-empty credential among the accepted env vars."""
    for name in _API_KEY_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def _load_settings() -> Settings:
    """Loads configuration from .env file and environment variables.

    Returns:
        A fully resolved Settings instance.
    """
    load_dotenv(_DOTENV_PATH)

    return Settings(
        # App
        app_env=os.environ.get("APP_ENV", "development"),
        app_port=int(os.environ.get("APP_PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        cors_origins=_split_csv(
            os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
        ),
        # AI
        ai_backend=os.environ.get("AI_BACKEND", "gemini"),
        assessment_model=_resolve_model(
            "ASSESSMENT_MODEL",
            os.environ.get("ASSESSMENT_MODEL", "GEMINI_FLASH"),
        ),
        evaluator_model=_resolve_model(
            "EVALUATOR_MODEL",
            os.environ.get("EVALUATOR_MODEL", "GEMINI_FLASH"),
        ),
        feedback_model=_resolve_model(
            "FEEDBACK_MODEL",
            os.environ.get("FEEDBACK_MODEL", "GEMINI_FLASH"),
        ),
        gemini_api_key=_first_api_key(),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Returns the singleton Settings instance. Loads .env on first call."""
    global _settings
    if _settings is None:
        _settings = _load_settings()
    return _settings

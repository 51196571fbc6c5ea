"""Tests for comprehension.config: Typed configuration from environment."""

import pytest

import comprehension.config as config_module
from comprehension.config import get_settings
from comprehension.models import GEMINI_FLASH, GEMINI_PRO


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Resets the cached singleton and skips the .env file."""
    monkeypatch.setattr(config_module, "_settings", None)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture()
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Removes all comprehension-related env vars so defaults are tested cleanly."""
    env_vars = [
        "APP_ENV", "APP_PORT", "LOG_LEVEL", "CORS_ORIGINS",
        "AI_BACKEND", "ASSESSMENT_MODEL", "EVALUATOR_MODEL", "FEEDBACK_MODEL",
        "GEMINI_API_KEY", "VITE_GEMINI_API_KEY", "GOOGLE_API_KEY",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    """Settings defaults when no env vars are set."""

    @pytest.mark.usefixtures("_clean_env")
    def test_app_defaults(self) -> None:
        s = get_settings()
        assert s.app_env == "development"
        assert s.app_port == 8000
        assert s.log_level == "info"
        assert s.cors_origins == ["http://localhost:3000", "http://localhost:5173"]

    @pytest.mark.usefixtures("_clean_env")
    def test_ai_defaults(self) -> None:
        s = get_settings()
        assert s.ai_backend == "gemini"
        assert s.assessment_model == GEMINI_FLASH
        assert s.evaluator_model == GEMINI_FLASH
        assert s.feedback_model == GEMINI_FLASH
        assert s.gemini_api_key == ""

    @pytest.mark.usefixtures("_clean_env")
    def test_singleton(self) -> None:
        assert get_settings() is get_settings()


class TestOverrides:
    @pytest.mark.usefixtures("_clean_env")
    def test_model_family_resolved(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ASSESSMENT_MODEL", "GEMINI_PRO")
        assert get_settings().assessment_model == GEMINI_PRO

    @pytest.mark.usefixtures("_clean_env")
    def test_invalid_model_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVALUATOR_MODEL", "GPT_4")
        with pytest.raises(ValueError, match="EVALUATOR_MODEL"):
            get_settings()

    @pytest.mark.usefixtures("_clean_env")
    def test_cors_origins_split(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CORS_ORIGINS", " http://a.test , ,http://b.test")
        assert get_settings().cors_origins == ["http://a.test", "http://b.test"]


class TestApiKey:
    @pytest.mark.usefixtures("_clean_env")
    def test_gemini_key_first(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "primary")
        monkeypatch.setenv("VITE_GEMINI_API_KEY", "vite")
        monkeypatch.setenv("GOOGLE_API_KEY", "google")
        assert get_settings().gemini_api_key == "primary"

    @pytest.mark.usefixtures("_clean_env")
    def test_vite_key_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VITE_GEMINI_API_KEY", "vite")
        monkeypatch.setenv("GOOGLE_API_KEY", "google")
        assert get_settings().gemini_api_key == "vite"

    @pytest.mark.usefixtures("_clean_env")
    def test_google_key_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "  ")
        monkeypatch.setenv("GOOGLE_API_KEY", "google")
        assert get_settings().gemini_api_key == "google"

"""
Unit tests for environment-driven settings.

Run: pytest tests/unit/test_config.py -v
"""

import pytest

from study_buddy.server.config import Settings, load_settings

ENV_KEYS = [
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "HEROKU_INFERENCE_URL",
    "HEROKU_INFERENCE_KEY",
    "HEROKU_INFERENCE_MODEL_ID",
    "AI_TIMEOUT_SECONDS",
    "SCHEDULE_REMAINDER_POLICY",
    "PING_MESSAGE",
    "CORS_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoadSettings:
    def test_defaults(self, clean_env):
        settings = load_settings()
        assert settings == Settings()
        assert not settings.has_gemini
        assert not settings.has_heroku

    def test_reads_environment(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "g-key")
        clean_env.setenv("GEMINI_MODEL", "gemini-2.0-flash")
        clean_env.setenv("HEROKU_INFERENCE_URL", "https://h")
        clean_env.setenv("HEROKU_INFERENCE_KEY", "h-key")
        clean_env.setenv("HEROKU_INFERENCE_MODEL_ID", "m")
        clean_env.setenv("AI_TIMEOUT_SECONDS", "12.5")
        clean_env.setenv("SCHEDULE_REMAINDER_POLICY", "Daily")
        clean_env.setenv("PING_MESSAGE", "pong")
        clean_env.setenv("CORS_ORIGINS", "http://localhost:8080, https://app.example.com")

        settings = load_settings()
        assert settings.has_gemini
        assert settings.has_heroku
        assert settings.gemini_model == "gemini-2.0-flash"
        assert settings.ai_timeout_seconds == 12.5
        assert settings.schedule_remainder_policy == "daily"
        assert settings.ping_message == "pong"
        assert settings.cors_origins == ("http://localhost:8080", "https://app.example.com")

    def test_partial_heroku_is_not_configured(self, clean_env):
        clean_env.setenv("HEROKU_INFERENCE_URL", "https://h")
        assert not load_settings().has_heroku

    def test_bad_values_fall_back(self, clean_env):
        clean_env.setenv("AI_TIMEOUT_SECONDS", "soon")
        clean_env.setenv("SCHEDULE_REMAINDER_POLICY", "spread")
        settings = load_settings()
        assert settings.ai_timeout_seconds == 30.0
        assert settings.schedule_remainder_policy == "last_day"

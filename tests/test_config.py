"""Tests for configuration module."""

import logging

import pytest

from safeguard_api.app.config import Settings, get_settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.MAX_TEXT_LENGTH == 10000
    assert settings.MODERATION_MODEL == "omni-moderation-latest"
    assert settings.MODERATION_API_URL == "https://api.openai.com/v1/moderations"
    assert settings.MODERATION_TIMEOUT == 10.0


def test_cors_origins_empty_filter() -> None:
    settings = Settings(ALLOWED_ORIGINS=" , , ")
    assert settings.cors_origins == []


def test_cors_origins_split() -> None:
    settings = Settings(ALLOWED_ORIGINS="http://localhost:5173, https://safeguard.example")
    assert settings.cors_origins == ["http://localhost:5173", "https://safeguard.example"]


def test_log_level_invalid_fallback() -> None:
    settings = Settings(LOG_LEVEL="INVALID_LEVEL")
    assert settings.log_level == logging.INFO


def test_strip_inline_comments_validator() -> None:
    settings = Settings(LOG_LEVEL="DEBUG  # debug comment", MODERATION_MODEL="omni  # m")
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.MODERATION_MODEL == "omni"


def test_api_key_is_not_comment_stripped() -> None:
    settings = Settings(OPENAI_API_KEY="sk-abc#123")
    assert settings.OPENAI_API_KEY.get_secret_value() == "sk-abc#123"


def test_api_key_is_masked() -> None:
    settings = Settings(OPENAI_API_KEY="sk-very-secret")
    assert "sk-very-secret" not in repr(settings)
    assert "sk-very-secret" not in str(settings.OPENAI_API_KEY)


@pytest.mark.parametrize(
    "api_key, configured",
    [(None, False), ("", False), ("   ", False), ("sk-test", True)],
)
def test_moderation_configured(api_key: str | None, configured: bool) -> None:
    assert Settings(OPENAI_API_KEY=api_key).moderation_configured is configured


def test_port_read_from_port_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SERVER_PORT", raising=False)
    monkeypatch.setenv("PORT", "8123")
    assert Settings().SERVER_PORT == 8123


def test_server_port_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("SERVER_PORT", "9000")
    assert Settings().SERVER_PORT == 9000


def test_api_key_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    assert Settings().OPENAI_API_KEY.get_secret_value() == "sk-from-env"


def test_get_settings_function() -> None:
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.API_VERSION == "v1"
    assert get_settings() is settings

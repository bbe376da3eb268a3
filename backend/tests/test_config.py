"""
Tests for settings loading
"""
from dreammapper.core.config import Settings


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "OLLAMA_URL", "OLLAMA_MODEL", "MOON_ACCESS_KEY", "MOON_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.api_port == 3000
    assert settings.ollama_url == "http://localhost:11434"
    assert settings.ollama_model == "gpt-oss:20b"
    assert settings.ollama_temperature == 0.2
    assert settings.llm_timeout_seconds == 120
    assert settings.moon_timeout_seconds == 10
    assert settings.moon_default_place_id == "norway/oslo"
    assert settings.moon_credentials_configured is False


def test_env_overrides_and_url_normalization(monkeypatch):
    monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434/")
    monkeypatch.setenv("MOON_ACCESS_KEY", "a")
    monkeypatch.setenv("MOON_SECRET_KEY", "b")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000, http://127.0.0.1:3000")
    settings = Settings(_env_file=None)

    assert settings.ollama_url == "http://gpu-box:11434"
    assert settings.moon_credentials_configured is True
    assert settings.allowed_origins_list == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_empty_keys_count_as_missing(monkeypatch):
    monkeypatch.setenv("MOON_ACCESS_KEY", "")
    monkeypatch.setenv("MOON_SECRET_KEY", "")
    assert Settings(_env_file=None).moon_credentials_configured is False

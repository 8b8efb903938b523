from __future__ import annotations

from stream_relay.core.config import Settings


def test_defaults(monkeypatch):
    for name in ("ALLOWED_ORIGINS", "UPSTREAM_TIMEOUT_SECONDS", "DEFAULT_OLLAMA_MODEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.allowed_origin_list == ["http://localhost:3000"]
    assert settings.upstream_timeout_seconds == 600
    assert settings.default_ollama_model == "llama2"


def test_allowed_origins_from_environment(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com,")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "30")

    settings = Settings(_env_file=None)

    assert settings.allowed_origin_list == ["https://a.example.com", "https://b.example.com"]
    assert settings.upstream_timeout_seconds == 30

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_ORIGIN = "http://localhost:3000"


class Settings(BaseSettings):
    """Runtime configuration, read once at startup from env and `.env`."""

    app_name: str = "stream-relay"
    host: str = "0.0.0.0"
    port: int = 8080
    allowed_origins: str = DEFAULT_ALLOWED_ORIGIN
    upstream_timeout_seconds: float = 600.0
    default_ollama_model: str = "llama2"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origin_list(self) -> list[str]:
        origins = [item.strip() for item in self.allowed_origins.split(",")]
        return [item for item in origins if item] or [DEFAULT_ALLOWED_ORIGIN]

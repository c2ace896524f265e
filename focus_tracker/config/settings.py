from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .runtime import get_runtime_config

_runtime = get_runtime_config()


class Settings(BaseSettings):
    """Environment-backed settings (``.env`` supported). Defaults come from runtime.yaml."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Mistral. An empty key is allowed here; the gateway dependency answers 503 without one.
    mistral_api_key: str = ""
    mistral_model: str = _runtime.app.mistral_model
    structured_vision_output: bool = _runtime.vision_structurer.enabled

    # HTTP server
    host: str = _runtime.server.host
    port: int = _runtime.server.port
    cors_origins: list[str] = Field(default_factory=lambda: list(_runtime.server.cors_origins))

    # JSON record storage root
    storage_path: str = _runtime.storage.path


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

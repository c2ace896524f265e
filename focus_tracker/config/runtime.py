"""
Runtime defaults that are tuning knobs rather than secrets.

Read once from ``runtime.yaml`` next to this module (or ``runtime.json``),
or from the file named by ``RUNTIME_CONFIG_PATH``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

RUNTIME_CONFIG_ENV = "RUNTIME_CONFIG_PATH"
_CONFIG_DIR = Path(__file__).resolve().parent
_DEFAULT_CANDIDATES = ("runtime.yaml", "runtime.json")


class MistralChatRuntimeConfig(BaseModel):
    model: str
    temperature: float = Field(ge=0.0, le=2.0)
    top_p: float = Field(gt=0.0, le=1.0)
    max_tokens: int = Field(ge=1)
    timeout_seconds: float = Field(gt=0)
    endpoint: str


class VisionStructurerRuntimeConfig(BaseModel):
    enabled: bool
    model: str
    max_input_chars: int = Field(ge=1000)


class CacheRuntimeConfig(BaseModel):
    default_ttl_seconds: float = Field(gt=0)


class FocusPlanRuntimeConfig(BaseModel):
    total_weeks: int = Field(ge=1)
    default_weekly_hours: int = Field(ge=0)
    default_dependency_level: int = Field(ge=0, le=100)


class FeedbackRuntimeConfig(BaseModel):
    expiry_days: int = Field(ge=1)
    questions: list[str]

    @model_validator(mode="after")
    def _validate_questions(self) -> FeedbackRuntimeConfig:
        if not self.questions:
            raise ValueError("feedback.questions must not be empty")
        if len(set(self.questions)) != len(self.questions):
            raise ValueError("feedback.questions must be unique")
        return self


class AppRuntimeConfig(BaseModel):
    mistral_model: str


class ServerRuntimeConfig(BaseModel):
    host: str
    port: int = Field(ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=list)


class StorageRuntimeConfig(BaseModel):
    path: str


class RuntimeConfig(BaseModel):
    mistral_chat: MistralChatRuntimeConfig
    vision_structurer: VisionStructurerRuntimeConfig
    cache: CacheRuntimeConfig
    focus_plan: FocusPlanRuntimeConfig
    feedback: FeedbackRuntimeConfig
    app: AppRuntimeConfig
    server: ServerRuntimeConfig
    storage: StorageRuntimeConfig


_runtime_config: RuntimeConfig | None = None


def get_runtime_config() -> RuntimeConfig:
    global _runtime_config
    if _runtime_config is None:
        _runtime_config = RuntimeConfig.model_validate(_read_config(resolve_runtime_path()))
    return _runtime_config


def resolve_runtime_path() -> Path:
    override = os.getenv(RUNTIME_CONFIG_ENV, "").strip()
    if override:
        return Path(override)
    for name in _DEFAULT_CANDIDATES:
        candidate = _CONFIG_DIR / name
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"No runtime config found in {_CONFIG_DIR} (looked for {', '.join(_DEFAULT_CANDIDATES)})"
    )


def _read_config(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"Runtime config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        import yaml

        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError(f"Runtime config must be .yaml, .yml or .json, got '{path.name}'")

    if not isinstance(data, dict):
        raise ValueError(f"Runtime config root must be a mapping: {path}")
    return data

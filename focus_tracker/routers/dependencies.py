"""FastAPI dependency providers shared by the routers (overridable in tests)."""

from __future__ import annotations

from pathlib import Path

from fastapi import Depends, HTTPException, status

from focus_tracker.config.settings import Settings, get_settings
from focus_tracker.engines import (
    ChatGateway,
    ExpiringCache,
    JsonFeedbackRepository,
    JsonFileKeyValueStorage,
    JsonFocusPlanRepository,
    JsonVisionRepository,
    JsonWeeklyCheckRepository,
    MistralChatConfig,
    MistralChatGateway,
    VisionStructurer,
)

CLIENT_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


def get_chat_gateway(settings: Settings = Depends(get_settings)) -> ChatGateway:
    try:
        return MistralChatGateway(
            api_key=settings.mistral_api_key,
            config=MistralChatConfig(model=settings.mistral_model),
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Chat gateway unavailable: {exc}",
        ) from exc


def get_vision_structurer(settings: Settings = Depends(get_settings)) -> VisionStructurer | None:
    if not settings.structured_vision_output or not settings.mistral_api_key:
        return None
    return VisionStructurer(api_key=settings.mistral_api_key)


def get_vision_repository(settings: Settings = Depends(get_settings)) -> JsonVisionRepository:
    return JsonVisionRepository(settings.storage_path)


def get_focus_plan_repository(settings: Settings = Depends(get_settings)) -> JsonFocusPlanRepository:
    return JsonFocusPlanRepository(settings.storage_path)


def get_weekly_check_repository(settings: Settings = Depends(get_settings)) -> JsonWeeklyCheckRepository:
    return JsonWeeklyCheckRepository(settings.storage_path)


def get_feedback_repository(settings: Settings = Depends(get_settings)) -> JsonFeedbackRepository:
    return JsonFeedbackRepository(settings.storage_path)


def onboarding_cache_for(settings: Settings, client_id: str) -> ExpiringCache:
    path = Path(settings.storage_path) / "onboarding_cache" / f"{client_id}.json"
    return ExpiringCache(JsonFileKeyValueStorage(path))

"""Engine modules for Focus Tracker."""

from .ai_gateway import (
    AIGatewayError,
    AIRateLimitError,
    ChatGateway,
    MistralChatConfig,
    MistralChatGateway,
)
from .expiring_cache import ExpiringCache, InMemoryKeyValueStorage, JsonFileKeyValueStorage
from .personalization import Personalization, parse_personalization
from .phase_detector import detect_phase, detect_signal
from .repositories import (
    JsonFeedbackRepository,
    JsonFocusPlanRepository,
    JsonVisionRepository,
    JsonWeeklyCheckRepository,
    StorageError,
)
from .vision_extractor import extract_vision
from .vision_interview import VisionInterview, calculate_progress
from .vision_prompt import PERSONALIZATION_PROMPT, build_system_prompt
from .vision_structurer import VisionStructurer, VisionStructurerConfig, VisionStructuringError

__all__ = [
    "AIGatewayError",
    "AIRateLimitError",
    "ChatGateway",
    "MistralChatConfig",
    "MistralChatGateway",
    "ExpiringCache",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "Personalization",
    "parse_personalization",
    "detect_phase",
    "detect_signal",
    "JsonFeedbackRepository",
    "JsonFocusPlanRepository",
    "JsonVisionRepository",
    "JsonWeeklyCheckRepository",
    "StorageError",
    "extract_vision",
    "VisionInterview",
    "calculate_progress",
    "PERSONALIZATION_PROMPT",
    "build_system_prompt",
    "VisionStructurer",
    "VisionStructurerConfig",
    "VisionStructuringError",
]

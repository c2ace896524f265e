from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Shared config helper
# ---------------------------------------------------------------------------

def _camel_config(**extra: object) -> ConfigDict:
    return ConfigDict(alias_generator=to_camel, populate_by_name=True, **extra)  # type: ignore[typeddict-item]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


InterviewPhase = Literal["personalization", "narrative", "clustering", "hardening", "complete"]

PHASE_ORDER: tuple[InterviewPhase, ...] = (
    "personalization",
    "narrative",
    "clustering",
    "hardening",
    "complete",
)

Gender = Literal["male", "female"]


# ---------------------------------------------------------------------------
# Vision interview
# ---------------------------------------------------------------------------

class VisionMessage(BaseModel):
    model_config = _camel_config(frozen=True)

    role: Literal["assistant", "user"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class VisionTile(BaseModel):
    model_config = _camel_config()

    name: str
    snapshot: str = ""
    actions: list[str] = Field(default_factory=list)
    routine: str = ""


class VisionOutput(BaseModel):
    model_config = _camel_config()

    narrative: str = ""
    tiles: list[VisionTile] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.narrative and not self.tiles


class VisionRecord(BaseModel):
    """Persisted interview; stored snake_case, one JSON file per record."""

    model_config = _camel_config()

    id: str = Field(default_factory=lambda: _new_id("vision"))
    user_id: str
    conversation_history: list[VisionMessage] = Field(default_factory=list)
    narrative: str = ""
    goals: list[str] = Field(
        default_factory=list,
        description="Tile names; a non-empty list marks a finished vision on reload",
    )
    tiles: list[VisionTile] = Field(default_factory=list)
    phase: InterviewPhase = "personalization"
    user_name: str = ""
    user_gender: Gender | None = None
    is_complete: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class VisionInterviewState(BaseModel):
    model_config = _camel_config()

    user_id: str | None
    vision_id: str | None
    has_existing_vision: bool
    messages: list[VisionMessage]
    phase: InterviewPhase
    progress: int
    is_loading: bool
    is_complete: bool
    user_name: str
    user_gender: Gender | None
    narrative: str
    tiles: list[VisionTile]


# Raw structured output from the schema-enforced structurer call.
# snake_case, no aliases: we control the JSON schema.

class RawVisionTile(BaseModel):
    name: str
    snapshot: str
    actions: list[str]
    routine: str


class RawVisionOutput(BaseModel):
    narrative: str
    tiles: list[RawVisionTile]


# ---------------------------------------------------------------------------
# Onboarding / focus plan
# ---------------------------------------------------------------------------

class BigRock(BaseModel):
    model_config = _camel_config()

    id: str = Field(default_factory=lambda: f"rock-{uuid.uuid4().hex[:8]}")
    title: str
    order: int = 0
    practices: list[str] = Field(default_factory=lambda: ["", "", ""])
    is_breakthrough: bool = False


class Stakeholder(BaseModel):
    model_config = _camel_config()

    name: str
    role: str = ""
    email: str | None = None
    action: str | None = None
    duration: int | None = None
    engagement_type: str | None = None
    frequency: str | None = None


class OnboardingTask(BaseModel):
    model_config = _camel_config()

    text: str
    recurring: bool = False


class OnboardingDraft(BaseModel):
    """Contents of the ``focus-tracker-onboarding`` cache entry."""

    model_config = _camel_config()

    tasks: list[OnboardingTask] = Field(default_factory=list)
    energy_boosters: list[str] = Field(default_factory=list)
    weekly_hours: int | None = Field(default=None, ge=0)
    stakeholders: list[Stakeholder] = Field(default_factory=list)
    dependency_level: int | None = Field(default=None, ge=0, le=100)


class OnboardingSummary(BaseModel):
    model_config = _camel_config()

    questionnaire: dict[str, str] | None
    big_rocks: list[BigRock]
    onboarding: OnboardingDraft


class FocusPlan(BaseModel):
    model_config = _camel_config()

    id: str = Field(default_factory=lambda: _new_id("plan"))
    user_id: str
    focus_area: Literal["big-rocks", "interfaces", "managing-up", "strategy"] = "big-rocks"
    twelve_week_goal: str = ""
    weekly_work_hours: int = Field(default=50, ge=0)
    tasks: list[str] = Field(default_factory=list)
    energy_boosters: list[str] = Field(default_factory=list)
    stakeholders: list[Stakeholder] = Field(default_factory=list)
    dependency_level: int = Field(default=50, ge=0, le=100)
    big_rocks: list[BigRock] = Field(default_factory=list)
    status: Literal["active", "archived"] = "active"
    start_date: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class WeeklyCheck(BaseModel):
    model_config = _camel_config()

    id: str = Field(default_factory=lambda: _new_id("check"))
    focus_plan_id: str
    week_number: int = Field(ge=1, le=53)
    year: int
    minutes_focused: int = Field(default=0, ge=0)
    tasks_completed: list[str] = Field(default_factory=list)
    energy_level: int = Field(ge=1, le=5)
    passion_level: int = Field(ge=1, le=5)
    updated_at: datetime = Field(default_factory=_utcnow)


class JourneyWeek(BaseModel):
    model_config = _camel_config()

    week_number: int
    iso_week: int
    year: int
    completed: bool
    current: bool


class WeeklyProgress(BaseModel):
    model_config = _camel_config()

    week_number: int
    year: int
    minutes_focused: int
    minutes_target: int
    tasks_completed: int
    tasks_total: int
    energy_level: int | None
    passion_level: int | None
    completed: bool


class FeedbackRequest(BaseModel):
    model_config = _camel_config()

    id: str = Field(default_factory=lambda: _new_id("fbreq"))
    user_id: str
    manager_name: str
    token: str = Field(default_factory=lambda: uuid.uuid4().hex)
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)


class FeedbackResponse(BaseModel):
    """Anonymous: carries no respondent identity."""

    model_config = _camel_config()

    id: str = Field(default_factory=lambda: _new_id("fbresp"))
    request_id: str
    ratings: dict[str, int | None] = Field(default_factory=dict)
    open_feedback: str = ""
    strengths: str = ""
    improvements: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Request / Response models for /vision/*
# ---------------------------------------------------------------------------

class VisionStartRequest(BaseModel):
    model_config = _camel_config()

    user_id: str


class VisionReplyRequest(BaseModel):
    model_config = _camel_config()

    user_id: str
    message: str


class VisionSaveResponse(BaseModel):
    model_config = _camel_config()

    vision_id: str | None
    saved: bool


# ---------------------------------------------------------------------------
# Request / Response models for POST /vision-interview (gateway contract)
# ---------------------------------------------------------------------------

class GatewayMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class GatewayRequest(BaseModel):
    model_config = _camel_config()

    user_id: str | None = None
    messages: list[GatewayMessage] | None = None


# ---------------------------------------------------------------------------
# Request / Response models for /onboarding/*
# ---------------------------------------------------------------------------

class TasksEnergyRequest(BaseModel):
    model_config = _camel_config()

    tasks: list[OnboardingTask] = Field(default_factory=list)
    energy_boosters: list[str] = Field(default_factory=list)
    weekly_hours: int = Field(default=50, ge=0)


class StakeholdersRequest(BaseModel):
    model_config = _camel_config()

    stakeholders: list[Stakeholder] = Field(default_factory=list)
    dependency_level: int | None = Field(default=None, ge=0, le=100)


class StartPlanRequest(BaseModel):
    model_config = _camel_config()

    user_id: str


# ---------------------------------------------------------------------------
# Request / Response models for /checkins/*
# ---------------------------------------------------------------------------

class CheckInRequest(BaseModel):
    model_config = _camel_config()

    user_id: str
    hours_focused: float = Field(ge=0)
    tasks_completed: list[str] = Field(default_factory=list)
    energy_level: int = Field(ge=1, le=5)
    passion_level: int = Field(ge=1, le=5)


class CurrentCheckInResponse(BaseModel):
    model_config = _camel_config()

    plan: FocusPlan
    check: WeeklyCheck | None
    progress: WeeklyProgress


# ---------------------------------------------------------------------------
# Request / Response models for /feedback/*
# ---------------------------------------------------------------------------

class CreateFeedbackRequest(BaseModel):
    model_config = _camel_config()

    user_id: str
    manager_name: str


class FeedbackRequestView(BaseModel):
    """Public view of a request: enough to render the form, nothing more."""

    model_config = _camel_config()

    manager_name: str
    expires_at: datetime
    questions: list[str]


class SubmitFeedbackRequest(BaseModel):
    model_config = _camel_config()

    ratings: dict[str, int | None] = Field(default_factory=dict)
    open_feedback: str = ""
    strengths: str = ""
    improvements: str = ""


class SubmitFeedbackResponse(BaseModel):
    model_config = _camel_config()

    response_id: str
    submitted_at: float = Field(default_factory=time.time)

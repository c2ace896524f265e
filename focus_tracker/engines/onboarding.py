"""
Onboarding staging: questionnaire answers, big rocks, tasks/energy and
stakeholders live in the expiring cache until the user starts a plan.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import ValidationError

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.models.schemas import (
    BigRock,
    FocusPlan,
    OnboardingDraft,
    OnboardingSummary,
    OnboardingTask,
    Stakeholder,
)

from .expiring_cache import (
    BIG_ROCKS_KEY,
    ONBOARDING_KEY,
    QUESTIONNAIRE_KEY,
    ExpiringCache,
    clear_onboarding,
)
from .repositories import FocusPlanRepository

_plan_runtime = get_runtime_config().focus_plan


class OnboardingError(ValueError):
    """Raised when staged onboarding data cannot become a plan."""


# (keywords, hebrew title, english title)
_ROCK_RULES: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (("צוות", "team"), "חיזוק הצוות", "Strengthen team"),
    (("אסטרטגי", "strateg"), "בניית אסטרטגיה", "Build strategy"),
    (("תהליך", "process"), "שיפור תהליכים", "Improve processes"),
    (("לקוח", "customer", "client"), "שיפור חוויית לקוח", "Improve customer experience"),
    (("מנהל", "leader", "manag"), "פיתוח מנהיגות", "Develop leadership"),
)

_DEFAULT_ROCKS: tuple[tuple[str, str], ...] = (
    ("חיזוק צוות ההנהלה", "Strengthen leadership team"),
    ("ייצוב תהליכי עבודה", "Stabilize workflows"),
    ("פיתוח אסטרטגיה", "Develop strategy"),
)


def default_rocks(rtl: bool) -> list[BigRock]:
    return [
        BigRock(id=f"rock-{i + 1}", title=he if rtl else en, order=i)
        for i, (he, en) in enumerate(_DEFAULT_ROCKS)
    ]


def generate_rock_suggestions(answers: dict[str, str], rtl: bool) -> list[BigRock]:
    """Suggest big rocks from keywords in the questionnaire answers."""
    values = " ".join(str(value) for value in answers.values()).lower()
    batch = uuid.uuid4().hex[:6]

    rocks: list[BigRock] = []
    for keywords, he_title, en_title in _ROCK_RULES:
        if any(keyword in values for keyword in keywords):
            rocks.append(
                BigRock(
                    id=f"rock-{batch}-{len(rocks)}",
                    title=he_title if rtl else en_title,
                    order=len(rocks),
                )
            )
    return rocks or default_rocks(rtl)


def apply_rock_order(rocks: list[BigRock]) -> list[BigRock]:
    """Renumber ``order`` from list position (the result of a drag reorder)."""
    return [rock.model_copy(update={"order": index}) for index, rock in enumerate(rocks)]


# ---------------------------------------------------------------------------
# Cache access
# ---------------------------------------------------------------------------

def save_questionnaire(cache: ExpiringCache, answers: dict[str, str]) -> None:
    cache.save(QUESTIONNAIRE_KEY, answers)


def load_questionnaire(cache: ExpiringCache) -> dict[str, str] | None:
    data = cache.load(QUESTIONNAIRE_KEY)
    if not isinstance(data, dict):
        return None
    return {str(k): str(v) for k, v in data.items()}


def load_saved_rocks(cache: ExpiringCache) -> list[BigRock]:
    data = cache.load(BIG_ROCKS_KEY)
    if not isinstance(data, list):
        return []
    try:
        rocks = [BigRock.model_validate(item) for item in data]
    except ValidationError:
        return []
    return sorted(rocks, key=lambda rock: rock.order)


def load_rocks(cache: ExpiringCache, rtl: bool) -> list[BigRock]:
    """Saved order first, then suggestions from the questionnaire, else nothing."""
    saved = load_saved_rocks(cache)
    if saved:
        return saved
    answers = load_questionnaire(cache)
    if answers:
        return generate_rock_suggestions(answers, rtl)
    return []


def save_rocks(cache: ExpiringCache, rocks: list[BigRock]) -> list[BigRock]:
    if not rocks:
        raise OnboardingError("At least one big rock is required")
    ordered = apply_rock_order(rocks)
    cache.save(BIG_ROCKS_KEY, [rock.model_dump(mode="json") for rock in ordered])
    return ordered


def load_draft(cache: ExpiringCache) -> OnboardingDraft:
    data = cache.load(ONBOARDING_KEY)
    if not isinstance(data, dict):
        return OnboardingDraft()
    try:
        return OnboardingDraft.model_validate(data)
    except ValidationError:
        return OnboardingDraft()


def _save_draft(cache: ExpiringCache, draft: OnboardingDraft) -> OnboardingDraft:
    cache.save(ONBOARDING_KEY, draft.model_dump(mode="json"))
    return draft


def save_tasks_energy(
    cache: ExpiringCache,
    tasks: list[OnboardingTask],
    energy_boosters: list[str],
    weekly_hours: int,
) -> OnboardingDraft:
    draft = load_draft(cache).model_copy(
        update={
            "tasks": [
                OnboardingTask(text=task.text.strip(), recurring=task.recurring)
                for task in tasks
                if task.text.strip()
            ],
            "energy_boosters": [b.strip() for b in energy_boosters if b.strip()],
            "weekly_hours": weekly_hours,
        }
    )
    return _save_draft(cache, draft)


def save_stakeholders(
    cache: ExpiringCache,
    stakeholders: list[Stakeholder],
    dependency_level: int | None = None,
) -> OnboardingDraft:
    update: dict[str, Any] = {
        "stakeholders": [s for s in stakeholders if s.name.strip()],
    }
    if dependency_level is not None:
        update["dependency_level"] = dependency_level
    draft = load_draft(cache).model_copy(update=update)
    return _save_draft(cache, draft)


# ---------------------------------------------------------------------------
# Summary and plan creation
# ---------------------------------------------------------------------------

def build_summary(cache: ExpiringCache) -> OnboardingSummary:
    return OnboardingSummary(
        questionnaire=load_questionnaire(cache),
        big_rocks=load_saved_rocks(cache),
        onboarding=load_draft(cache),
    )


def build_focus_plan(user_id: str, summary: OnboardingSummary) -> FocusPlan:
    if not summary.big_rocks:
        raise OnboardingError("At least one big rock is required to start a plan")

    draft = summary.onboarding
    return FocusPlan(
        user_id=user_id,
        focus_area="big-rocks",
        twelve_week_goal=summary.big_rocks[0].title,
        weekly_work_hours=(
            draft.weekly_hours if draft.weekly_hours is not None else _plan_runtime.default_weekly_hours
        ),
        tasks=[task.text for task in draft.tasks],
        energy_boosters=list(draft.energy_boosters),
        stakeholders=list(draft.stakeholders),
        dependency_level=(
            draft.dependency_level
            if draft.dependency_level is not None
            else _plan_runtime.default_dependency_level
        ),
        big_rocks=list(summary.big_rocks),
        status="active",
    )


def start_plan(user_id: str, cache: ExpiringCache, plans: FocusPlanRepository) -> FocusPlan:
    """Create or replace the user's active plan, then drop the staged answers."""
    plan = plans.upsert(build_focus_plan(user_id, build_summary(cache)))
    clear_onboarding(cache)
    return plan

"""
Onboarding Router

Stages questionnaire answers, big rocks, tasks/energy and stakeholders for an
anonymous client in the expiring cache, then turns them into a focus plan.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi import Path as PathParam

from focus_tracker.config.settings import Settings, get_settings
from focus_tracker.engines import ExpiringCache, JsonFocusPlanRepository, StorageError
from focus_tracker.engines.onboarding import (
    OnboardingError,
    build_summary,
    load_rocks,
    save_questionnaire,
    save_rocks,
    save_stakeholders,
    save_tasks_energy,
    start_plan,
)
from focus_tracker.models.schemas import (
    BigRock,
    FocusPlan,
    OnboardingDraft,
    OnboardingSummary,
    StakeholdersRequest,
    StartPlanRequest,
    TasksEnergyRequest,
)

from .dependencies import CLIENT_ID_PATTERN, get_focus_plan_repository, onboarding_cache_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def get_onboarding_cache(
    client_id: str = PathParam(..., pattern=CLIENT_ID_PATTERN),
    settings: Settings = Depends(get_settings),
) -> ExpiringCache:
    return onboarding_cache_for(settings, client_id)


@router.put("/{client_id}/questionnaire", response_model=dict[str, str])
async def put_questionnaire(
    answers: dict[str, str],
    cache: ExpiringCache = Depends(get_onboarding_cache),
) -> dict[str, str]:
    save_questionnaire(cache, answers)
    return answers


@router.get("/{client_id}/rocks", response_model=list[BigRock])
async def get_rocks(
    rtl: bool = Query(True),
    cache: ExpiringCache = Depends(get_onboarding_cache),
) -> list[BigRock]:
    """Saved order if present, otherwise suggestions from the questionnaire."""
    return load_rocks(cache, rtl)


@router.put("/{client_id}/rocks", response_model=list[BigRock])
async def put_rocks(
    rocks: list[BigRock],
    cache: ExpiringCache = Depends(get_onboarding_cache),
) -> list[BigRock]:
    try:
        return save_rocks(cache, rocks)
    except OnboardingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put("/{client_id}/tasks-energy", response_model=OnboardingDraft)
async def put_tasks_energy(
    request: TasksEnergyRequest,
    cache: ExpiringCache = Depends(get_onboarding_cache),
) -> OnboardingDraft:
    return save_tasks_energy(cache, request.tasks, request.energy_boosters, request.weekly_hours)


@router.put("/{client_id}/stakeholders", response_model=OnboardingDraft)
async def put_stakeholders(
    request: StakeholdersRequest,
    cache: ExpiringCache = Depends(get_onboarding_cache),
) -> OnboardingDraft:
    return save_stakeholders(cache, request.stakeholders, request.dependency_level)


@router.get("/{client_id}/summary", response_model=OnboardingSummary)
async def get_summary(cache: ExpiringCache = Depends(get_onboarding_cache)) -> OnboardingSummary:
    return build_summary(cache)


@router.post("/{client_id}/start-plan", response_model=FocusPlan, status_code=status.HTTP_201_CREATED)
async def post_start_plan(
    request: StartPlanRequest,
    cache: ExpiringCache = Depends(get_onboarding_cache),
    plans: JsonFocusPlanRepository = Depends(get_focus_plan_repository),
) -> FocusPlan:
    if not request.user_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="userId is required")
    try:
        return start_plan(request.user_id.strip(), cache, plans)
    except OnboardingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        logger.exception("Failed to save focus plan for %s", request.user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

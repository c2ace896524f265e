"""
Check-ins Router

Active focus plan lookup, weekly check-in upsert and the 12-week journey.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from focus_tracker.engines import JsonFocusPlanRepository, JsonWeeklyCheckRepository
from focus_tracker.engines.checkins import current_week, journey, record_check, weekly_progress
from focus_tracker.models.schemas import (
    CheckInRequest,
    CurrentCheckInResponse,
    FocusPlan,
    JourneyWeek,
    WeeklyCheck,
)

from .dependencies import get_focus_plan_repository, get_weekly_check_repository

router = APIRouter(tags=["checkins"])


def _active_plan(plans: JsonFocusPlanRepository, user_id: str) -> FocusPlan:
    plan = plans.get_active(user_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active focus plan")
    return plan


@router.get("/plans/active", response_model=FocusPlan)
async def get_active_plan(
    user_id: str = Query(..., alias="userId", min_length=1),
    plans: JsonFocusPlanRepository = Depends(get_focus_plan_repository),
) -> FocusPlan:
    return _active_plan(plans, user_id)


@router.post("/checkins", response_model=WeeklyCheck)
async def post_checkin(
    request: CheckInRequest,
    plans: JsonFocusPlanRepository = Depends(get_focus_plan_repository),
    checks: JsonWeeklyCheckRepository = Depends(get_weekly_check_repository),
) -> WeeklyCheck:
    """Save this week's check-in; a second submission in the same week replaces the first."""
    plan = _active_plan(plans, request.user_id)
    return record_check(
        checks,
        plan,
        hours_focused=request.hours_focused,
        tasks_completed=request.tasks_completed,
        energy_level=request.energy_level,
        passion_level=request.passion_level,
    )


@router.get("/checkins/current", response_model=CurrentCheckInResponse)
async def get_current_checkin(
    user_id: str = Query(..., alias="userId", min_length=1),
    plans: JsonFocusPlanRepository = Depends(get_focus_plan_repository),
    checks: JsonWeeklyCheckRepository = Depends(get_weekly_check_repository),
) -> CurrentCheckInResponse:
    plan = _active_plan(plans, user_id)
    week_number, year = current_week()
    check = checks.get(plan.id, week_number, year)
    return CurrentCheckInResponse(plan=plan, check=check, progress=weekly_progress(plan, check))


@router.get("/checkins/journey", response_model=list[JourneyWeek])
async def get_journey(
    user_id: str = Query(..., alias="userId", min_length=1),
    plans: JsonFocusPlanRepository = Depends(get_focus_plan_repository),
    checks: JsonWeeklyCheckRepository = Depends(get_weekly_check_repository),
) -> list[JourneyWeek]:
    plan = _active_plan(plans, user_id)
    return journey(plan, checks.list_for_plan(plan.id))

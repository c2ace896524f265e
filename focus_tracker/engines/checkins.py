from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.models.schemas import FocusPlan, JourneyWeek, WeeklyCheck, WeeklyProgress

from .repositories import WeeklyCheckRepository

_plan_runtime = get_runtime_config().focus_plan


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def current_week(today: date | None = None) -> tuple[int, int]:
    """(ISO week number, ISO year) for ``today``."""
    iso = (today or today_utc()).isocalendar()
    return iso[1], iso[0]


def hours_to_minutes(hours: float) -> int:
    return max(0, round(hours * 60))


def record_check(
    checks: WeeklyCheckRepository,
    plan: FocusPlan,
    hours_focused: float,
    tasks_completed: list[str],
    energy_level: int,
    passion_level: int,
    today: date | None = None,
) -> WeeklyCheck:
    """Upsert this week's check-in on (plan, week, year)."""
    week_number, year = current_week(today)
    completed = [task for task in dict.fromkeys(tasks_completed) if task in plan.tasks]
    check = WeeklyCheck(
        focus_plan_id=plan.id,
        week_number=week_number,
        year=year,
        minutes_focused=hours_to_minutes(hours_focused),
        tasks_completed=completed,
        energy_level=energy_level,
        passion_level=passion_level,
    )
    return checks.upsert(check)


def journey(plan: FocusPlan, checks: list[WeeklyCheck], today: date | None = None) -> list[JourneyWeek]:
    """Plan-relative weeks 1..N, each mapped to the ISO week it falls in."""
    today = today or today_utc()
    done = {(check.year, check.week_number) for check in checks}
    this_week = current_week(today)
    start = plan.start_date.date()

    weeks: list[JourneyWeek] = []
    for index in range(_plan_runtime.total_weeks):
        iso_week, iso_year = current_week(start + timedelta(weeks=index))
        weeks.append(
            JourneyWeek(
                week_number=index + 1,
                iso_week=iso_week,
                year=iso_year,
                completed=(iso_year, iso_week) in done,
                current=(iso_week, iso_year) == this_week,
            )
        )
    return weeks


def weekly_progress(plan: FocusPlan, check: WeeklyCheck | None, today: date | None = None) -> WeeklyProgress:
    week_number, year = current_week(today)
    return WeeklyProgress(
        week_number=week_number,
        year=year,
        minutes_focused=check.minutes_focused if check else 0,
        minutes_target=plan.weekly_work_hours * 60,
        tasks_completed=len(check.tasks_completed) if check else 0,
        tasks_total=len(plan.tasks),
        energy_level=check.energy_level if check else None,
        passion_level=check.passion_level if check else None,
        completed=check is not None,
    )

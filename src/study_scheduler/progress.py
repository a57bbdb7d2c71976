"""Completion status and progress statistics."""
from datetime import date
from typing import Iterable

from study_scheduler.dates import Clock, days_between, format_date
from study_scheduler.models import BookMaterial, VideoMaterial, completion_key, to_date
from study_scheduler.planner import generate_weekly_plan, round_half_up


def is_learning_completed(material) -> bool:
    if isinstance(material, BookMaterial):
        return material.current_page >= material.end_page
    if isinstance(material, VideoMaterial):
        return material.current_progress >= len(material.sections)
    return False


def get_remaining_days(material, clock: Clock = date.today) -> int:
    """Days left until the material's end date; 0 once it has passed."""
    today = clock()
    end = to_date(material.end_date)
    if end < today:
        return 0
    return days_between(today, end)


def get_progress_stats(materials: list, completed_keys: Iterable[str], clock: Clock = date.today) -> dict:
    """Headline numbers for the overview screen.

    Today's and this week's figures come from the externally tracked
    completion-key set; material completion comes from progress counters.
    The two are reported side by side and never reconciled.
    """
    completed_keys = set(completed_keys)
    today = format_date(clock())
    plan = generate_weekly_plan(materials, clock=clock)

    week_total = 0
    week_done = 0
    today_tasks = 0
    today_completed = 0
    for day in plan.days:
        for task in day.tasks:
            done = completion_key(task.material_id, day.date) in completed_keys
            week_total += 1
            week_done += done
            if day.date == today:
                today_tasks += 1
                today_completed += done

    return {
        "total_materials": len(materials),
        "completed_materials": sum(1 for m in materials if is_learning_completed(m)),
        "today_tasks": today_tasks,
        "today_completed": today_completed,
        "week_progress": round_half_up(week_done / week_total * 100) if week_total else 0,
    }

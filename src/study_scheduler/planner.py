"""Weekly plan assembly across all registered materials."""
import math
from datetime import date, timedelta
from typing import Iterable, Optional

from study_scheduler.dates import Clock, date_range, day_of_week, format_date, week_start
from study_scheduler.distribution import (
    book_pages_read, generate_book_task_for_date, generate_video_task_for_date,
)
from study_scheduler.models import (
    BookMaterial, CustomMaterial, DailyLearningPlan, DailyTask, VideoMaterial, WeeklyPlan, to_date,
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def generate_task_for_date(material, day) -> Optional[DailyTask]:
    if isinstance(material, BookMaterial):
        return generate_book_task_for_date(material, day)
    if isinstance(material, VideoMaterial):
        return generate_video_task_for_date(material, day)
    if isinstance(material, CustomMaterial):
        # custom materials carry their own task list and aren't scheduled
        return None
    return None


def generate_daily_plan(materials: Iterable, day) -> DailyLearningPlan:
    tasks = []
    for material in materials:
        task = generate_task_for_date(material, day)
        if task:
            tasks.append(task)
    return DailyLearningPlan(date=format_date(day), day_of_week=day_of_week(day), tasks=tasks)


def generate_weekly_plan(materials: list, week_start_date=None, clock: Clock = date.today) -> WeeklyPlan:
    """Seven days of tasks, Sunday through Saturday.

    Defaults to the week containing today. Task order within a day follows
    the order of ``materials``.
    """
    start = to_date(week_start_date) if week_start_date is not None else week_start(clock=clock)
    # an explicit start is used as-is, so a non-Sunday start still yields seven days
    end = start + timedelta(days=6)
    days = [generate_daily_plan(materials, day) for day in date_range(start, end)]
    return WeeklyPlan(week_start=start, week_end=end, days=days)


def calculate_progress(material) -> int:
    """Percent complete (0-100) from the material's own progress counter."""
    if isinstance(material, BookMaterial):
        return min(round_half_up(book_pages_read(material) / material.total_pages * 100), 100)
    if isinstance(material, VideoMaterial):
        if not material.sections:
            return 0
        return round_half_up(material.current_progress / len(material.sections) * 100)
    return 0


def get_today_workload(materials: list, clock: Clock = date.today) -> dict:
    """Unfinished book reading owed today."""
    today = clock()
    books = []
    for material in materials:
        if not isinstance(material, BookMaterial):
            continue
        task = generate_book_task_for_date(material, today)
        if task and not task.completed:
            books.append({"title": material.title, "pages": task.description})
    return {"books": books, "total": len(books)}

# tests/test_planner.py
from dataclasses import replace
from datetime import date

from study_scheduler.distribution import schedule_book, schedule_video, update_video_progress
from study_scheduler.models import CustomMaterial, VideoSection
from study_scheduler.planner import (
    calculate_progress, generate_daily_plan, generate_weekly_plan, get_today_workload, round_half_up,
)


def make_sections(count, duration=30):
    return [VideoSection(id=f"video-{i}", title=f"Lecture {i}", duration=duration, order=i) for i in range(count)]


def sample_materials():
    book = schedule_book("Fluent Python", 100, date(2024, 1, 1), date(2024, 1, 10))
    video = schedule_video("Async course", make_sections(10), date(2024, 1, 1), date(2024, 1, 4))
    custom = CustomMaterial(id="custom-1", title="Flashcards", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    return [book, video, custom]


def test_weekly_plan_has_seven_days():
    plan = generate_weekly_plan(sample_materials(), date(2023, 12, 31))
    assert plan.week_start == date(2023, 12, 31)
    assert plan.week_end == date(2024, 1, 6)
    assert [d.date for d in plan.days] == [
        "2023-12-31", "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05", "2024-01-06",
    ]
    assert plan.days[0].day_of_week == "Sunday"
    assert plan.days[6].day_of_week == "Saturday"


def test_weekly_plan_tasks_follow_material_order():
    plan = generate_weekly_plan(sample_materials(), date(2023, 12, 31))
    assert plan.days[0].tasks == []
    assert [t.material_type for t in plan.days[1].tasks] == ["book", "video"]
    assert [t.material_type for t in plan.days[5].tasks] == ["book"]


def test_weekly_plan_skips_custom_materials():
    plan = generate_weekly_plan(sample_materials(), date(2023, 12, 31))
    assert all(t.material_type != "custom" for day in plan.days for t in day.tasks)


def test_weekly_plan_defaults_to_current_week():
    plan = generate_weekly_plan(sample_materials(), clock=lambda: date(2024, 1, 3))
    assert plan.week_start == date(2023, 12, 31)
    assert len(plan.days) == 7


def test_weekly_plan_with_no_materials():
    plan = generate_weekly_plan([], date(2024, 1, 7))
    assert len(plan.days) == 7
    assert all(day.tasks == [] for day in plan.days)


def test_daily_plan():
    plan = generate_daily_plan(sample_materials(), date(2024, 1, 3))
    assert plan.date == "2024-01-03"
    assert plan.day_of_week == "Wednesday"
    assert plan.tasks[0].description == "pages 21-30"


def test_calculate_progress_book():
    book = schedule_book("B", 100, date(2024, 1, 1), date(2024, 1, 10))
    assert calculate_progress(book) == 0
    assert calculate_progress(replace(book, current_page=50)) == 50
    assert calculate_progress(replace(book, current_page=120)) == 100


def test_calculate_progress_rounds_half_up():
    book = schedule_book("B", 8, date(2024, 1, 1), date(2024, 1, 10))
    assert calculate_progress(replace(book, current_page=1)) == 13
    assert round_half_up(2.5) == 3


def test_calculate_progress_video_and_custom():
    materials = sample_materials()
    video = update_video_progress(materials[1], 1)
    assert calculate_progress(video) == 10
    empty = schedule_video("Empty", [], date(2024, 1, 1), date(2024, 1, 4))
    assert calculate_progress(empty) == 0
    assert calculate_progress(materials[2]) == 0


def test_today_workload_lists_unfinished_books_only():
    book, video, custom = sample_materials()
    done_today = replace(schedule_book("Done", 100, date(2024, 1, 1), date(2024, 1, 10)), current_page=30)
    workload = get_today_workload([book, video, custom, done_today], clock=lambda: date(2024, 1, 3))
    assert workload == {"books": [{"title": "Fluent Python", "pages": "pages 21-30"}], "total": 1}


def test_today_workload_outside_window():
    workload = get_today_workload(sample_materials(), clock=lambda: date(2024, 2, 1))
    assert workload == {"books": [], "total": 0}


def test_calculate_progress_book_with_offset_start_page():
    book = schedule_book("B", 50, date(2024, 1, 1), date(2024, 1, 10), start_page=51)
    assert calculate_progress(book) == 0
    assert calculate_progress(replace(book, current_page=75)) == 50
    assert calculate_progress(replace(book, current_page=100)) == 100

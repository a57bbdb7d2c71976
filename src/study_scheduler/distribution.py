"""Daily workload allocation for books and video courses.

A material's date window is inclusive at both ends. Books are split into
fixed page blocks of ``ceil(pages / days)``; videos are split on a
fractional sections-per-day rate so that every section lands on exactly
one day.
"""
import math
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional

from study_scheduler.dates import days_between, inclusive_days
from study_scheduler.models import (
    BOOK, VIDEO, BookMaterial, DailyTask, VideoMaterial, VideoSection, to_date,
)
from study_scheduler.video_parser import split_duration


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


def schedule_book(
    title: str,
    total_pages: int,
    start_date,
    end_date,
    description: Optional[str] = None,
    start_page: int = 1,
) -> BookMaterial:
    """Register a book, fixing its pages-per-day rate for the whole window."""
    days = inclusive_days(start_date, end_date)
    now = _timestamp()
    return BookMaterial(
        id=str(uuid.uuid4()),
        title=title,
        description=description,
        total_pages=total_pages,
        start_page=start_page,
        end_page=start_page + total_pages - 1,
        current_page=start_page - 1,
        start_date=to_date(start_date),
        end_date=to_date(end_date),
        pages_per_day=math.ceil(total_pages / days),
        created_at=now,
        updated_at=now,
    )


def schedule_video(
    title: str,
    sections: list[VideoSection],
    start_date,
    end_date,
    description: Optional[str] = None,
) -> VideoMaterial:
    """Register a video course.

    The stored ``sections_per_day`` is the ceiled rate, shown to the user as
    a daily quota. Per-date allocation recomputes the exact fractional rate
    instead (see ``generate_video_task_for_date``).
    """
    days = inclusive_days(start_date, end_date)
    now = _timestamp()
    return VideoMaterial(
        id=str(uuid.uuid4()),
        title=title,
        description=description,
        sections=list(sections),
        total_duration=sum(s.duration for s in sections),
        current_progress=0,
        start_date=to_date(start_date),
        end_date=to_date(end_date),
        sections_per_day=math.ceil(len(sections) / days),
        created_at=now,
        updated_at=now,
    )


def _in_window(material, day) -> bool:
    return to_date(material.start_date) <= day <= to_date(material.end_date)


def book_page_range(book: BookMaterial, day_index: int) -> tuple[int, int]:
    start_page = max(book.start_page, book.start_page + day_index * book.pages_per_day)
    end_page = min(book.start_page + (day_index + 1) * book.pages_per_day - 1, book.end_page)
    return start_page, end_page


def generate_book_task_for_date(book: BookMaterial, day) -> Optional[DailyTask]:
    """Pages owed on ``day``, or None outside the window or once the book is done."""
    day = to_date(day)
    if not _in_window(book, day):
        return None
    if book.current_page >= book.end_page:
        return None

    day_index = days_between(book.start_date, day)
    start_page, end_page = book_page_range(book, day_index)
    # ceiled blocks run out before the last day when pages don't divide evenly
    if start_page > book.end_page:
        return None

    return DailyTask(
        material_id=book.id,
        material_title=book.title,
        material_type=BOOK,
        description=f"pages {start_page}-{end_page}",
        completed=book.current_page >= end_page,
        start_page=start_page,
        end_page=end_page,
    )


def video_section_range(video: VideoMaterial, day_index: int) -> tuple[int, int]:
    """Slice bounds for ``day_index`` at the fractional rate len(sections) / days.

    The stored ``sections_per_day`` is ceiled and is not used here.
    Integer floor division gives floor(index * rate) without float error.
    """
    total = len(video.sections)
    days = inclusive_days(video.start_date, video.end_date)
    start_index = day_index * total // days
    end_index = min((day_index + 1) * total // days, total)
    return start_index, end_index


def describe_minutes(total_minutes: int) -> str:
    hours, minutes = split_duration(total_minutes)
    if hours > 0:
        return f"about {hours} hr {minutes} min"
    return f"about {minutes} min"


def generate_video_task_for_date(video: VideoMaterial, day) -> Optional[DailyTask]:
    """Sections owed on ``day``, or None when nothing falls on it."""
    day = to_date(day)
    if not _in_window(video, day):
        return None
    if video.current_progress >= len(video.sections):
        return None

    day_index = days_between(video.start_date, day)
    start_index, end_index = video_section_range(video, day_index)
    if start_index >= len(video.sections):
        return None
    day_sections = video.sections[start_index:end_index]
    if not day_sections:
        return None

    total_minutes = sum(s.duration for s in day_sections)
    count = len(day_sections)
    noun = "lecture" if count == 1 else "lectures"
    return DailyTask(
        material_id=video.id,
        material_title=video.title,
        material_type=VIDEO,
        description=f"{count} {noun} ({describe_minutes(total_minutes)})",
        completed=video.current_progress >= end_index,
        sections=[s.title for s in day_sections],
    )


def book_pages_read(book: BookMaterial) -> int:
    """Pages read so far; ``current_page`` is an absolute page number."""
    return max(0, min(book.current_page, book.end_page) - book.start_page + 1)


def update_book_progress(book: BookMaterial, completed_page: int) -> BookMaterial:
    return replace(
        book,
        current_page=min(completed_page, book.end_page),
        updated_at=_timestamp(),
    )


def update_video_progress(video: VideoMaterial, completed_sections: int) -> VideoMaterial:
    completed_sections = max(0, min(completed_sections, len(video.sections)))
    sections = [
        replace(s, completed=i < completed_sections)
        for i, s in enumerate(video.sections)
    ]
    return replace(
        video,
        sections=sections,
        current_progress=completed_sections,
        updated_at=_timestamp(),
    )

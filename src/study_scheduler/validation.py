"""Registration form checks and the live schedule previews shown before saving."""
import math
from typing import Optional

from study_scheduler.dates import inclusive_days
from study_scheduler.models import FieldError, ParsedVideo, ValidationResult
from study_scheduler.video_parser import calculate_daily_minutes, calculate_daily_sections, format_duration


def _check_dates(errors: dict, start_date, end_date) -> None:
    if not start_date:
        errors["start_date"] = "Choose a start date."
    if not end_date:
        errors["end_date"] = "Choose an end date."
    if start_date and end_date and end_date <= start_date:
        errors["end_date"] = "The end date must be after the start date."


def _result(errors: dict) -> ValidationResult:
    return ValidationResult(
        is_valid=not errors,
        errors=[FieldError(field=f, message=m) for f, m in errors.items()],
    )


def validate_book_form(title: str, start_page: int, end_page: int, start_date, end_date) -> ValidationResult:
    errors = {}
    if not (title or "").strip():
        errors["title"] = "Enter the book title."
    if start_page < 1:
        errors["start_page"] = "The start page must be 1 or more."
    if end_page < 1:
        errors["end_page"] = "The end page must be 1 or more."
    if start_page > 0 and end_page > 0 and end_page < start_page:
        errors["end_page"] = "The end page must not be before the start page."
    _check_dates(errors, start_date, end_date)
    return _result(errors)


def validate_video_form(title: str, video_text: str, parsed: Optional[ParsedVideo], start_date, end_date) -> ValidationResult:
    errors = {}
    if not (title or "").strip():
        errors["title"] = "Enter the course title."
    if not (video_text or "").strip():
        errors["video_text"] = "Paste the lecture list."
    elif parsed is None or parsed.total_count == 0:
        errors["video_text"] = "No lectures with running times were found in the list."
    _check_dates(errors, start_date, end_date)
    return _result(errors)


def preview_book_schedule(start_page: int, end_page: int, start_date, end_date) -> Optional[int]:
    """Pages per day for the form's current values, or None when they don't describe a schedule."""
    total_pages = end_page - start_page + 1
    if total_pages <= 0 or not start_date or not end_date:
        return None
    return math.ceil(total_pages / inclusive_days(start_date, end_date))


def preview_video_schedule(parsed: Optional[ParsedVideo], start_date, end_date) -> Optional[dict]:
    if parsed is None or not start_date or not end_date or end_date < start_date:
        return None
    total_days = inclusive_days(start_date, end_date)
    minutes_per_day = calculate_daily_minutes(parsed.total_duration, total_days)
    return {
        "sections_per_day": calculate_daily_sections(parsed.total_count, total_days),
        "minutes_per_day": minutes_per_day,
        "time_per_day": format_duration(minutes_per_day),
        "total_days": total_days,
    }

"""Data classes for the study scheduler domain model."""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import ClassVar, Optional, Union

BOOK = "book"
VIDEO = "video"
CUSTOM = "custom"

ERROR_TYPES = ("validation", "conflict", "storage", "calculation", "unknown")


def to_date(value) -> date:
    """Coerce a date, datetime or ISO string to a calendar date (time-of-day dropped)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class VideoSection:
    id: str
    title: str
    duration: int  # minutes, review overhead included
    completed: bool = False
    order: int = 0


@dataclass
class CustomTask:
    id: str
    title: str
    date: str
    completed: bool = False


@dataclass
class BookMaterial:
    type: ClassVar[str] = BOOK

    id: str
    title: str
    total_pages: int
    start_date: date
    end_date: date
    pages_per_day: int
    current_page: int = 0
    start_page: int = 1
    end_page: Optional[int] = None
    description: Optional[str] = None
    color: Optional[str] = "primary-500"
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        self.start_date = to_date(self.start_date)
        self.end_date = to_date(self.end_date)
        if self.end_page is None:
            self.end_page = self.start_page + self.total_pages - 1


@dataclass
class VideoMaterial:
    type: ClassVar[str] = VIDEO

    id: str
    title: str
    sections: list[VideoSection]
    total_duration: int
    start_date: date
    end_date: date
    sections_per_day: int
    current_progress: int = 0
    description: Optional[str] = None
    color: Optional[str] = "secondary-500"
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        self.start_date = to_date(self.start_date)
        self.end_date = to_date(self.end_date)


@dataclass
class CustomMaterial:
    """Free-form material. Stored and listed, but never scheduled."""
    type: ClassVar[str] = CUSTOM

    id: str
    title: str
    start_date: date
    end_date: date
    tasks: list[CustomTask] = field(default_factory=list)
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        self.start_date = to_date(self.start_date)
        self.end_date = to_date(self.end_date)


LearningMaterial = Union[BookMaterial, VideoMaterial, CustomMaterial]

MATERIAL_TYPES = {BOOK: BookMaterial, VIDEO: VideoMaterial, CUSTOM: CustomMaterial}


@dataclass
class ParsedVideo:
    sections: list[VideoSection]
    total_duration: int
    total_count: int


@dataclass
class DailyTask:
    material_id: str
    material_title: str
    material_type: str
    description: str
    completed: bool = False
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    sections: Optional[list[str]] = None


@dataclass
class DailyLearningPlan:
    date: str  # YYYY-MM-DD
    day_of_week: str
    tasks: list[DailyTask] = field(default_factory=list)


@dataclass
class WeeklyPlan:
    week_start: date
    week_end: date
    days: list[DailyLearningPlan] = field(default_factory=list)


@dataclass
class ReminderSetting:
    enabled: bool = False
    time: str = "09:00"
    days_of_week: list[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])


@dataclass
class ErrorState:
    has_error: bool
    message: str
    type: str = "unknown"


@dataclass
class StorageResult:
    success: bool
    error: Optional[ErrorState] = None


@dataclass
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[FieldError] = field(default_factory=list)

    def messages(self) -> dict[str, str]:
        return {e.field: e.message for e in self.errors}


def completion_key(material_id: str, day) -> str:
    """Key for the externally tracked (material, date) completion set."""
    return f"{material_id}-{to_date(day).isoformat()}"


def split_completion_key(key: str) -> tuple[str, str]:
    """Split a completion key on its trailing YYYY-MM-DD date.

    Material ids contain dashes themselves, so the key can't be split on the
    first one.
    """
    material_id, day = key[:-11], key[-10:]
    if key[-11:-10] != "-" or not material_id:
        raise ValueError(f"Malformed completion key: {key!r}")
    date.fromisoformat(day)
    return material_id, day


def material_to_dict(material: LearningMaterial) -> dict:
    data = asdict(material)
    data["type"] = material.type
    data["start_date"] = material.start_date.isoformat()
    data["end_date"] = material.end_date.isoformat()
    return data


def material_from_dict(data: dict) -> LearningMaterial:
    """Build a material from its stored dict form. Raises KeyError/ValueError on bad data."""
    data = dict(data)
    kind = data.pop("type")
    if kind == BOOK:
        return BookMaterial(**data)
    if kind == VIDEO:
        data["sections"] = [VideoSection(**s) for s in data.get("sections") or []]
        return VideoMaterial(**data)
    if kind == CUSTOM:
        data["tasks"] = [CustomTask(**t) for t in data.get("tasks") or []]
        return CustomMaterial(**data)
    raise ValueError(f"Unknown material type: {kind!r}")

"""Parse pasted video-course listings into timed sections.

A listing is line oriented: a lecture title on one line, its running time
(``MM:SS`` or ``HH:MM:SS``) on a later line. Chapter numbers, "free preview"
badges and download links are interleaved and ignored.
"""
import math
import re
from collections import OrderedDict
from datetime import timedelta

from study_scheduler.dates import inclusive_days
from study_scheduler.models import ParsedVideo, VideoSection, to_date

# Minutes added to every lecture for review and note taking.
REVIEW_OVERHEAD_MINUTES = 20

TIME_PATTERN = re.compile(r"(\d{1,2}:\d{2}(?::\d{2})?)")
NUMERIC_LINE = re.compile(r"\d+")

NOISE_LINES = {"무료", "Free"}
NOISE_FRAGMENTS = ("다운로드", "강의 자료", "수업 자료", "Download", "Course material", "Class material")

SKIP = "skip"
TITLE = "title"
DURATION = "duration"


def _to_int(text: str) -> int:
    """Leading-digit integer parse; anything unparseable counts as zero."""
    match = re.match(r"\s*(\d+)", text)
    return int(match.group(1)) if match else 0


def parse_time_to_minutes(time_str: str) -> int:
    """Convert ``MM:SS`` / ``HH:MM:SS`` to whole minutes plus review overhead.

    Seconds round up to a full minute.
    """
    parts = time_str.strip().split(":")
    if len(parts) == 2:
        minutes, seconds = (_to_int(p) for p in parts)
        return minutes + math.ceil(seconds / 60) + REVIEW_OVERHEAD_MINUTES
    if len(parts) == 3:
        hours, minutes, seconds = (_to_int(p) for p in parts)
        return hours * 60 + minutes + math.ceil(seconds / 60) + REVIEW_OVERHEAD_MINUTES
    return REVIEW_OVERHEAD_MINUTES


def classify_line(line: str) -> tuple[str, str]:
    """Classify a stripped, non-blank line as SKIP, DURATION or TITLE.

    Rules apply in order: numeric markers and noise phrases are skipped,
    a line containing a time is a duration, anything else is a title.
    The payload is the matched time for DURATION and the line for TITLE.
    """
    if NUMERIC_LINE.fullmatch(line):
        return SKIP, line
    if line in NOISE_LINES or any(fragment in line for fragment in NOISE_FRAGMENTS):
        return SKIP, line
    match = TIME_PATTERN.search(line)
    if match:
        return DURATION, match.group(1)
    return TITLE, line


class VideoTextParser:
    """Line-by-line state machine holding at most one pending title."""

    def __init__(self):
        self.pending_title = ""
        self.sections: list[VideoSection] = []

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()
        if not line:
            return
        kind, payload = classify_line(line)
        if kind == TITLE:
            # an unconsumed title is replaced silently
            self.pending_title = payload
        elif kind == DURATION and self.pending_title:
            order = len(self.sections)
            self.sections.append(VideoSection(
                id=f"video-{order}",
                title=self.pending_title,
                duration=parse_time_to_minutes(payload),
                completed=False,
                order=order,
            ))
            self.pending_title = ""

    def result(self) -> ParsedVideo:
        return ParsedVideo(
            sections=list(self.sections),
            total_duration=sum(s.duration for s in self.sections),
            total_count=len(self.sections),
        )


def parse_video_text(text: str) -> ParsedVideo:
    parser = VideoTextParser()
    for line in text.split("\n"):
        parser.feed(line)
    return parser.result()


def split_duration(minutes: int) -> tuple[int, int]:
    return minutes // 60, minutes % 60


def format_duration(minutes: int) -> str:
    hours, mins = split_duration(minutes)
    if hours == 0:
        return f"{mins} min"
    if mins == 0:
        return f"{hours} hr"
    return f"{hours} hr {mins} min"


def calculate_daily_minutes(total_minutes: int, total_days: int) -> int:
    return math.ceil(total_minutes / total_days)


def calculate_daily_sections(total_sections: int, total_days: int) -> int:
    return math.ceil(total_sections / total_days)


def estimate_completion_days(total_minutes: int, max_daily_minutes: int = 180) -> int:
    """Days needed to watch everything at no more than ``max_daily_minutes`` a day."""
    return math.ceil(total_minutes / max_daily_minutes)


def distribute_sections_across_days(sections: list[VideoSection], start_date, end_date) -> "OrderedDict[str, list[VideoSection]]":
    """Greedy front-loaded split: each day takes ceil(N / days) sections until none remain.

    Days left without sections are omitted from the result.
    """
    start, end = to_date(start_date), to_date(end_date)
    per_day = calculate_daily_sections(len(sections), inclusive_days(start, end))
    distribution = OrderedDict()
    current = start
    index = 0
    while index < len(sections) and current <= end:
        chunk = sections[index:index + per_day]
        index += len(chunk)
        if chunk:
            distribution[current.isoformat()] = chunk
        current += timedelta(days=1)
    return distribution

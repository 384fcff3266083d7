"""Input validation helpers shared by the routers."""

import re
import secrets
from datetime import date, time

VALID_PRIORITIES = ("low", "medium", "high")
VALID_STATUSES = ("pending", "in_progress", "completed")
VALID_MATERIAL_TYPES = ("notes", "study_guide", "practice_test", "flashcards")
VALID_WORKLOG_TYPES = ("classwork", "homework", "notes", "quiz", "test", "project", "other")
VALID_BLOCK_TYPES = ("class", "study", "free", "work", "other")
VALID_TASK_TYPES = ("assignment", "study", "review", "break")

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:([0-5]\d))?$")

MAX_DURATION_MINUTES = 1440


def is_valid_priority(value) -> bool:
    return value in VALID_PRIORITIES


def is_valid_hex_color(value) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR.match(value))


def is_valid_duration(value) -> bool:
    """A positive whole number of minutes, at most one day."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 < value <= MAX_DURATION_MINUTES


def is_valid_date(value) -> bool:
    if not isinstance(value, str) or not _DATE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value) -> bool:
    return isinstance(value, str) and bool(_TIME.match(value))


def normalize_end_time(value: str) -> str:
    """Midnight as an end time means end of day."""
    if value in ("00:00", "00:00:00"):
        return "23:59:59"
    return value


def parse_time(value: str) -> time:
    if not is_valid_time(value):
        raise ValueError(f"Invalid time: {value}")
    return time.fromisoformat(value if value.count(":") == 2 else f"{value}:00")


def parse_date(value: str) -> date:
    if not is_valid_date(value):
        raise ValueError(f"Invalid date: {value}")
    return date.fromisoformat(value)


def generate_invite_code() -> str:
    return secrets.token_hex(4)

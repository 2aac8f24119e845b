"""Shared utilities used across the booking core."""

import re
import uuid
from datetime import date, datetime

MINUTES_PER_DAY = 24 * 60

WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+251 (91) 234-5678")
        '+251912345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_time(value: str) -> int:
    """Convert an HH:MM string into minutes since midnight.

    ``24:00`` is accepted as the end-of-day boundary.

    Raises:
        ValueError: If the value is not a valid HH:MM time.
    """
    match = re.fullmatch(r"(\d{2}):(\d{2})", value.strip())
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """Convert minutes since midnight back into HH:MM."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    """Parse an ISO YYYY-MM-DD string."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def weekday_name(value: str) -> str:
    """Return the lowercase weekday name of an ISO date."""
    return WEEKDAYS[parse_date(value).weekday()]


def intervals_overlap(a: int, b: int, c: int, d: int) -> bool:
    """Half-open overlap test for ``[a, b)`` and ``[c, d)``."""
    return a < d and c < b


def validate_iso_date(value: str) -> str:
    """Pydantic helper: accept an ISO date string and return it stripped."""
    value = value.strip()
    parse_date(value)
    return value


def validate_hhmm(value: str) -> str:
    """Pydantic helper: accept an HH:MM string and return it stripped."""
    value = value.strip()
    parse_time(value)
    return value


def new_id(prefix: str) -> str:
    """Short, human-readable identifier such as ``BK-3F9A1C2E``."""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

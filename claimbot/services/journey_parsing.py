"""Free-text parsers for the journey capture states.

Each parser returns a ``ParseResult``: either the parsed value or a
user-facing error message.
"""

import re
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

MAX_CLAIM_AGE_DAYS = 90

MONTHS = {
    name: index
    for index, names in enumerate(
        [
            ("january", "jan"),
            ("february", "feb"),
            ("march", "mar"),
            ("april", "apr"),
            ("may",),
            ("june", "jun"),
            ("july", "jul"),
            ("august", "aug"),
            ("september", "sep", "sept"),
            ("october", "oct"),
            ("november", "nov"),
            ("december", "dec"),
        ],
        start=1,
    )
    for name in names
}

DAY_MONTH_RE = re.compile(r"^(\d{1,2})\s+([a-z]+)$")
SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
CLOCK_MERIDIEM_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(am|pm)$")
COMPACT_TIME_RE = re.compile(r"^(\d{4})$")
HOUR_MERIDIEM_RE = re.compile(r"^(\d{1,2})\s*(am|pm)$")

STATION_PAIR_RE = re.compile(r"(?:from\s+)?(.+?)\s+to\s+(.+)", re.IGNORECASE)

EMPTY_DATE = 'Please enter a date (e.g., "today", "yesterday", "15 Nov", "15/11/2024")'
INVALID_DATE = 'Invalid date format. Try "today", "yesterday", "15 Nov", or "15/11/2024"'
FUTURE_DATE = "Sorry, I can only help with past or today journeys (no future journeys yet)."
TOO_OLD_DATE = (
    f"Sorry, that journey is too old to claim (>{MAX_CLAIM_AGE_DAYS} days). "
    f"Claims must be made within {MAX_CLAIM_AGE_DAYS} days of travel."
)

EMPTY_TIME = 'Please enter a time (e.g., "14:30", "2:30pm", "2pm")'
INVALID_TIME = 'Invalid time format. Try "14:30", "2:30pm", "1430", or "2pm"'
INVALID_HOUR = "Invalid time: hour must be between 0 and 23"
INVALID_MINUTE = "Invalid time: minute must be between 0 and 59"


@dataclass
class ParseResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @staticmethod
    def success(value: T) -> "ParseResult[T]":
        return ParseResult(ok=True, value=value)

    @staticmethod
    def failure(error: str) -> "ParseResult[T]":
        return ParseResult(ok=False, error=error)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_day_month(text: str, today: date) -> Optional[date]:
    match = DAY_MONTH_RE.match(text)
    if not match:
        return None
    month = MONTHS.get(match.group(2))
    if month is None:
        return None

    day = int(match.group(1))
    candidate = _safe_date(today.year, month, day)
    if candidate is None:
        return None
    if candidate > today:
        # A day-month without a year means the most recent occurrence.
        candidate = _safe_date(today.year - 1, month, day)
    return candidate


def _parse_numeric(text: str) -> Optional[date]:
    match = SLASH_DATE_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = ISO_DATE_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)
    return None


def parse_travel_date(text: str, today: Optional[date] = None) -> ParseResult[date]:
    today = today or date.today()
    cleaned = (text or "").strip().lower()
    if not cleaned:
        return ParseResult.failure(EMPTY_DATE)

    relative = {"today": today, "yesterday": today - timedelta(days=1), "tomorrow": today + timedelta(days=1)}
    parsed = relative.get(cleaned) or _parse_day_month(cleaned, today) or _parse_numeric(cleaned)
    if parsed is None:
        return ParseResult.failure(INVALID_DATE)

    if parsed > today:
        return ParseResult.failure(FUTURE_DATE)
    if (today - parsed).days > MAX_CLAIM_AGE_DAYS:
        return ParseResult.failure(TOO_OLD_DATE)
    return ParseResult.success(parsed)


def _to_24_hour(hour: int, meridiem: str) -> int:
    if meridiem == "pm" and hour != 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def _match_time(text: str) -> Optional[tuple[int, int]]:
    match = CLOCK_RE.match(text)
    if match:
        return int(match.group(1)), int(match.group(2))

    match = CLOCK_MERIDIEM_RE.match(text)
    if match:
        return _to_24_hour(int(match.group(1)), match.group(3)), int(match.group(2))

    match = COMPACT_TIME_RE.match(text)
    if match:
        digits = match.group(1)
        return int(digits[:2]), int(digits[2:])

    match = HOUR_MERIDIEM_RE.match(text)
    if match:
        return _to_24_hour(int(match.group(1)), match.group(2)), 0
    return None


def parse_departure_time(text: str) -> ParseResult[time]:
    cleaned = (text or "").strip().lower()
    if not cleaned:
        return ParseResult.failure(EMPTY_TIME)

    matched = _match_time(cleaned)
    if matched is None:
        return ParseResult.failure(INVALID_TIME)

    hour, minute = matched
    if not 0 <= hour <= 23:
        return ParseResult.failure(INVALID_HOUR)
    if not 0 <= minute <= 59:
        return ParseResult.failure(INVALID_MINUTE)
    return ParseResult.success(time(hour, minute))


def parse_station_pair(text: str) -> Optional[tuple[str, str]]:
    """Split "[from] X to Y" into its two station names."""
    match = STATION_PAIR_RE.match((text or "").strip())
    if not match:
        return None
    origin, destination = match.group(1).strip(), match.group(2).strip()
    if not origin or not destination:
        return None
    return origin, destination

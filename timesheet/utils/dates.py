"""Date, year-month key and session duration helpers."""
import re
from datetime import date, datetime, timedelta
from typing import Optional

YEAR_MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")
ENTRY_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
TIMESTAMP_PREFIX_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")

MAX_SESSION_HOURS = 24.0


def format_year_month(year: int, month: int) -> str:
    """
    Build a year-month key.

    Example:
        >>> format_year_month(2024, 3)
        '2024-03'
    """
    return f"{year:04d}-{month:02d}"


def year_month_of(value) -> Optional[str]:
    """
    Derive the year-month key of an entry date.

    Accepts a ``YYYY-MM-DD`` string, an ISO timestamp starting with one, or
    a date/datetime. The whole string must parse. Anything missing or
    unparsable yields None so the entry contributes to no summary.

    Example:
        >>> year_month_of("2024-01-15")
        '2024-01'
        >>> year_month_of("2024-01-15xyz") is None
        True
    """
    if value is None:
        return None

    if isinstance(value, (date, datetime)):
        return format_year_month(value.year, value.month)

    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        if ENTRY_DATE_PATTERN.fullmatch(text):
            parsed = date.fromisoformat(text)
        elif TIMESTAMP_PREFIX_PATTERN.match(text):
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        else:
            return None
    except ValueError:
        return None

    return format_year_month(parsed.year, parsed.month)


def is_year_month(value) -> bool:
    """Check whether a value is a ``YYYY-MM`` string."""
    return isinstance(value, str) and YEAR_MONTH_PATTERN.match(value) is not None


def split_year_month(year_month: str) -> tuple[int, int]:
    """
    Split a year-month key into integers.

    Raises:
        ValueError: If the key is not ``YYYY-MM``
    """
    if not is_year_month(year_month):
        raise ValueError(f"Invalid year-month: {year_month!r}")

    year_str, month_str = year_month.split("-")
    return int(year_str), int(month_str)


def parse_entry_date(value: str) -> date:
    """
    Parse an entry date.

    Raises:
        ValueError: If the value is not ``YYYY-MM-DD``
    """
    if not isinstance(value, str) or not ENTRY_DATE_PATTERN.fullmatch(value):
        raise ValueError("Invalid date value")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError("Invalid date value")


def session_hours(
    entry_date: str,
    start_time: str,
    end_time: str,
    is_overnight: bool = False,
) -> float:
    """
    Wall-clock duration of a work session in hours, rounded to 2 decimals.

    The end time is moved to the next day when the session is overnight.

    Args:
        entry_date: Local date, ``YYYY-MM-DD``
        start_time: Local start, ``HH:MM``
        end_time: Local end, ``HH:MM``
        is_overnight: Whether the end rolls past midnight

    Returns:
        Hours between start and end

    Raises:
        ValueError: If a value is unparsable, end is not after start, or the
            session is longer than 24 hours

    Example:
        >>> session_hours("2024-01-15", "09:00", "17:30")
        8.5
        >>> session_hours("2024-01-15", "22:00", "02:15", is_overnight=True)
        4.25
    """
    day = parse_entry_date(entry_date)

    try:
        start = datetime.combine(day, datetime.strptime(start_time, "%H:%M").time())
        end = datetime.combine(day, datetime.strptime(end_time, "%H:%M").time())
    except (TypeError, ValueError):
        raise ValueError("Invalid date or time value")

    if is_overnight:
        end += timedelta(days=1)

    if end <= start:
        raise ValueError("End time must be after start time")

    hours = (end - start).total_seconds() / 3600
    if hours > MAX_SESSION_HOURS:
        raise ValueError("Work session cannot be longer than 24 hours")

    return round(hours, 2)

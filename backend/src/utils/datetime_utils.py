"""
Datetime utilities for consistent timezone handling across the application.

All business logic ("today", generation windows) uses the school's timezone,
configured as a fixed UTC offset. Dates and times of day are stored naive and
interpreted in that timezone.
"""

import calendar
import logging
from datetime import datetime, timezone, timedelta, date, time
from typing import Optional

from core.config import SCHOOL_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

SCHOOL_TZ = timezone(timedelta(hours=SCHOOL_UTC_OFFSET_HOURS))


def school_now() -> datetime:
    """
    Get the current datetime in the school timezone.

    Returns:
        Current timezone-aware datetime in the school timezone
    """
    return datetime.now(SCHOOL_TZ)


def school_today() -> date:
    """Get today's date in the school timezone."""
    return school_now().date()


def ensure_school_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the school timezone.

    Naive datetimes are assumed to already be school time.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=SCHOOL_TZ)
    return dt.astimezone(SCHOOL_TZ)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Automatically normalizes single-digit months/days ("2025-1-6").

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    normalized = f"{parts[0].zfill(4)}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def parse_time_string(time_str: str) -> time:
    """
    Parse a time-of-day string in HH:MM format.

    Raises:
        ValueError: If the string is not a valid HH:MM time
    """
    if not time_str or not time_str.strip():
        raise ValueError("Time string cannot be empty")
    try:
        return datetime.strptime(time_str.strip(), '%H:%M').time()
    except ValueError as e:
        raise ValueError(f"Invalid time format (expected HH:MM): {time_str}") from e


def format_date(d: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return d.strftime('%Y-%m-%d')


def time_to_minutes(t: time) -> int:
    """Convert a time of day to minutes since midnight."""
    return t.hour * 60 + t.minute


def minutes_to_hhmm(minutes: int) -> str:
    """Format minutes since midnight as HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_months(d: date, months: int) -> date:
    """
    Add calendar months to a date.

    The day of month is clamped to the last day of the target month,
    so Jan 31 + 1 month is Feb 28 (or Feb 29 in a leap year).
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)

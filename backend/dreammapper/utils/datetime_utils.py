"""
Datetime utilities
Provides timezone-aware datetime functions and lenient date parsing for request bodies
"""
from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time (replacement for deprecated datetime.utcnow())

    Returns:
        datetime: Current UTC time with timezone awareness
    """
    return datetime.now(timezone.utc)


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date from "YYYY-MM-DD" or an ISO 8601 datetime

    Returns None for None/blank input.

    Raises:
        ValueError: the value is not a recognizable date
    """
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    # datetime.fromisoformat rejects a trailing "Z" before Python 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value).date()

"""
Standardized Date Handling Utilities

Check-ins belong to the user's local calendar day. This module keeps the
conversions in one place:
1. "Today" is always resolved in a named timezone, never from a UTC timestamp
2. Calendar dates travel as YYYY-MM-DD strings and are parsed here
3. Invalid timezone names fall back to the configured default

CRITICAL RULES:
- Never derive a user's calendar day from datetime.utcnow()
- Compare calendar days with date objects, not datetimes
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


def get_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    """
    Resolve a timezone name, or return the default

    Args:
        tz_name: IANA timezone name (e.g. "Europe/Madrid")

    Returns:
        ZoneInfo object
    """
    name = tz_name or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{name}': {e}")
        return ZoneInfo("UTC")


def today_in_timezone(tz_name: Optional[str] = None) -> date:
    """Today's calendar date in the given timezone"""
    return datetime.now(get_timezone(tz_name)).date()


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date without any timezone shifting

    Accepts date objects, datetimes (their own date part is used) and
    strings starting with YYYY-MM-DD. Returns None when unparseable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            logger.debug(f"Unparseable calendar date: {value!r}")
            return None
    return None


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if reversed)"""
    return (later - earlier).days


def date_range(end: date, days: int) -> list[date]:
    """The `days` calendar dates ending at (and including) end, ascending"""
    return [end - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def iso_week_label(day: date) -> str:
    """ISO week label, e.g. 2024-W03"""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"

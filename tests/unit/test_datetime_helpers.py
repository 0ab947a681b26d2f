"""Unit tests for Datetime Helpers (src/utils/datetime_helpers.py)"""
import pytest
from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo
from unittest.mock import patch

from src.utils.datetime_helpers import (
    date_range,
    days_between,
    get_timezone,
    iso_week_label,
    parse_calendar_date,
    today_in_timezone,
)


# ============================================================================
# Timezone Tests
# ============================================================================

def test_get_timezone_valid():
    assert get_timezone("Europe/Madrid") == ZoneInfo("Europe/Madrid")


def test_get_timezone_invalid_falls_back_to_utc():
    assert get_timezone("Mars/Olympus_Mons") == ZoneInfo("UTC")


def test_get_timezone_default():
    with patch("src.utils.datetime_helpers.DEFAULT_TIMEZONE", "Asia/Tokyo"):
        assert get_timezone() == ZoneInfo("Asia/Tokyo")


def test_today_in_timezone_uses_local_calendar():
    """Late evening UTC is already tomorrow in Tokyo"""
    fixed_now = datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc)

    class FixedDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return fixed_now.astimezone(tz)

    with patch("src.utils.datetime_helpers.datetime", FixedDatetime):
        assert today_in_timezone("UTC") == date(2024, 1, 10)
        assert today_in_timezone("Asia/Tokyo") == date(2024, 1, 11)
        assert today_in_timezone("America/Los_Angeles") == date(2024, 1, 10)


# ============================================================================
# Parsing Tests
# ============================================================================

@pytest.mark.parametrize("value,expected", [
    ("2024-01-10", date(2024, 1, 10)),
    ("2024-01-10T23:59:00+05:00", date(2024, 1, 10)),
    (" 2024-01-10 ", date(2024, 1, 10)),
    (date(2024, 1, 10), date(2024, 1, 10)),
    (datetime(2024, 1, 10, 23, 0, tzinfo=timezone.utc), date(2024, 1, 10)),
])
def test_parse_calendar_date(value, expected):
    assert parse_calendar_date(value) == expected


@pytest.mark.parametrize("value", ["yesterday", "2024-13-01", "", None, 20240110])
def test_parse_calendar_date_invalid(value):
    assert parse_calendar_date(value) is None


# ============================================================================
# Calendar Arithmetic Tests
# ============================================================================

def test_days_between():
    assert days_between(date(2024, 1, 1), date(2024, 1, 3)) == 2
    assert days_between(date(2024, 1, 3), date(2024, 1, 1)) == -2


def test_days_between_across_year_boundary():
    assert days_between(date(2023, 12, 31), date(2024, 1, 1)) == 1


def test_date_range_ascending_and_inclusive():
    assert date_range(date(2024, 3, 1), 3) == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]


def test_iso_week_label():
    assert iso_week_label(date(2024, 1, 1)) == "2024-W01"
    assert iso_week_label(date(2023, 1, 1)) == "2022-W52"

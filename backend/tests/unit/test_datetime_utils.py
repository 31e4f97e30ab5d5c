"""
Unit tests for datetime utilities.

Tests school timezone handling, parsing and calendar arithmetic.
"""

import pytest
from datetime import date, datetime, time, timedelta, timezone

from core.config import SCHOOL_UTC_OFFSET_HOURS
from utils.datetime_utils import (
    SCHOOL_TZ, add_months, ensure_school_tz, format_date, minutes_to_hhmm,
    parse_date_string, parse_time_string, school_now, school_today, time_to_minutes
)


class TestSchoolTimezone:
    """Test school timezone utilities."""

    def test_school_now_is_timezone_aware(self):
        now = school_now()

        assert now.tzinfo == SCHOOL_TZ

    def test_school_tz_offset_matches_config(self):
        assert SCHOOL_TZ.utcoffset(None) == timedelta(hours=SCHOOL_UTC_OFFSET_HOURS)

    def test_school_today_is_a_date(self):
        assert isinstance(school_today(), date)

    def test_ensure_school_tz_naive(self):
        result = ensure_school_tz(datetime(2025, 1, 1, 10, 0))

        assert result.tzinfo == SCHOOL_TZ
        assert result.hour == 10

    def test_ensure_school_tz_converts_aware(self):
        utc_value = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)

        result = ensure_school_tz(utc_value)

        assert result.tzinfo == SCHOOL_TZ
        assert result == utc_value

    def test_ensure_school_tz_none(self):
        assert ensure_school_tz(None) is None


class TestParsing:
    """Test date and time parsing."""

    @pytest.mark.parametrize("value", ["2025-01-06", "2025/01/06", "2025-1-6", " 2025-01-06 "])
    def test_parse_date_formats(self, value):
        assert parse_date_string(value) == date(2025, 1, 6)

    @pytest.mark.parametrize("value", ["", "2025", "2025-13-01", "06.01.2025"])
    def test_parse_date_invalid(self, value):
        with pytest.raises(ValueError):
            parse_date_string(value)

    def test_parse_time(self):
        assert parse_time_string("09:30") == time(9, 30)

    @pytest.mark.parametrize("value", ["", "25:00", "9.30", "noon"])
    def test_parse_time_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_string(value)


class TestConversions:
    """Test formatting and minute conversions."""

    def test_format_date(self):
        assert format_date(date(2025, 1, 6)) == "2025-01-06"

    def test_minutes_round_trip(self):
        assert time_to_minutes(time(15, 45)) == 945
        assert minutes_to_hhmm(945) == "15:45"
        assert minutes_to_hhmm(0) == "00:00"


class TestAddMonths:
    """Test calendar month arithmetic."""

    def test_simple(self):
        assert add_months(date(2025, 1, 15), 1) == date(2025, 2, 15)

    def test_clamps_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2025, 11, 30), 3) == date(2026, 2, 28)
        assert add_months(date(2025, 6, 1), 12) == date(2026, 6, 1)

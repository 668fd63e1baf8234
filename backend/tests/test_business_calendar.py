"""Tests for the business calendar."""
from datetime import date, datetime, timedelta, timezone

import pytest

from vat_automation.utils.time import BusinessCalendar, format_display_date, format_iso
from tests.helpers import LONDON, fixed_calendar


class TestBusinessCalendar:
    """Tests for BusinessCalendar."""

    def test_summer_utc_evening_is_next_london_day(self):
        """23:30 UTC on 30 June is already 1 July in London (BST)."""
        calendar = fixed_calendar(datetime(2024, 6, 30, 23, 30, tzinfo=timezone.utc))

        now = calendar.now_in_business_timezone()

        assert now.date() == date(2024, 7, 1)
        assert now.hour == 0
        assert calendar.today() == date(2024, 7, 1)

    def test_winter_utc_matches_london(self):
        """In GMT the London date matches the UTC date."""
        calendar = fixed_calendar(datetime(2024, 1, 31, 23, 30, tzinfo=timezone.utc))

        assert calendar.today() == date(2024, 1, 31)

    def test_naive_datetimes_are_business_local(self):
        """Naive values are interpreted in the business timezone, not UTC."""
        calendar = BusinessCalendar("Europe/London")

        local = calendar.to_business_time(datetime(2024, 5, 1, 0, 30))

        assert local.tzinfo is not None
        assert local.utcoffset() == timedelta(hours=1)
        assert local.date() == date(2024, 5, 1)

    def test_start_of_day_carries_offset(self):
        """Midnight is aware and uses the seasonal offset."""
        calendar = BusinessCalendar("Europe/London")

        assert calendar.start_of_day(date(2024, 6, 30)).utcoffset() == timedelta(hours=1)
        assert calendar.start_of_day(date(2024, 12, 31)).utcoffset() == timedelta(0)

    def test_month_arithmetic(self):
        """End of month and previous month end handle leap years."""
        calendar = BusinessCalendar("Europe/London")

        assert calendar.end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
        assert calendar.last_day_of_previous_month(date(2024, 3, 1)) == date(2024, 2, 29)
        assert calendar.last_day_of_previous_month(date(2024, 1, 1)) == date(2023, 12, 31)

    def test_unknown_timezone(self):
        """An unknown zone name fails fast."""
        with pytest.raises(ValueError):
            BusinessCalendar("Not/AZone")


class TestFormatting:
    """Tests for date formatting helpers."""

    def test_display_date(self):
        """Long British format without a leading zero."""
        assert format_display_date(date(2024, 6, 30)) == "30 June 2024"
        assert format_display_date(date(2024, 7, 1)) == "1 July 2024"

    def test_format_iso_converts_to_utc(self):
        """ISO output is normalised to UTC with a Z suffix."""
        assert format_iso(datetime(2024, 7, 1, 6, 0, tzinfo=LONDON)) == "2024-07-01T05:00:00Z"

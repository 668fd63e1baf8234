"""Time Utilities - UTC timestamps, formatting and the business calendar"""
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Callable, Optional
from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

from ..config.settings import settings


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    if dt.tzinfo is None:
        # Assume UTC if no timezone
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted date or datetime string

    Returns:
        Datetime object; naive if the string carried no offset
    """
    return date_parser.isoparse(iso_string)


def end_of_month(day: date) -> date:
    """Last calendar day of the month containing ``day``"""
    return day + relativedelta(day=31)


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from the month of ``day``"""
    return day + relativedelta(months=months, day=1)


def format_display_date(day: date) -> str:
    """Long British date, e.g. '30 June 2024'"""
    return f"{day.day} {day.strftime('%B %Y')}"


def format_short_date(day: date) -> str:
    """Numeric British date, e.g. '30/06/2024'"""
    return day.strftime("%d/%m/%Y")


# ============================================================================
# Business calendar
# ============================================================================

class BusinessCalendar:
    """
    Civil-time view of "now" for the practice.

    All calendar predicates (day-of-month gating, "has the quarter ended",
    previous month) are evaluated in the business timezone, never in UTC.
    """

    def __init__(
        self,
        timezone_name: str = "Europe/London",
        now_provider: Optional[Callable[[], datetime]] = None
    ):
        zone = tz.gettz(timezone_name)
        if zone is None:
            raise ValueError(f"Unknown timezone: {timezone_name}")
        self.timezone_name = timezone_name
        self.zone: tzinfo = zone
        self._now_provider = now_provider or utc_now

    def now_in_business_timezone(self) -> datetime:
        """Current instant as an aware datetime in the business timezone"""
        return self.to_business_time(self._now_provider())

    def to_business_time(self, dt: datetime) -> datetime:
        """Convert to business time; naive values are taken as business-local"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self.zone)
        return dt.astimezone(self.zone)

    def today(self) -> date:
        return self.now_in_business_timezone().date()

    def start_of_day(self, day: date) -> datetime:
        """Aware midnight at the start of ``day`` in the business timezone"""
        return datetime(day.year, day.month, day.day, tzinfo=self.zone)

    def end_of_month(self, day: date) -> date:
        return end_of_month(day)

    def last_day_of_previous_month(self, day: date) -> date:
        return day.replace(day=1) - timedelta(days=1)


@lru_cache()
def get_business_calendar() -> BusinessCalendar:
    """Get the calendar for the configured business timezone"""
    return BusinessCalendar(settings.business_timezone)

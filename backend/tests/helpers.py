"""Time helpers shared by the test modules"""
from datetime import datetime

from dateutil import tz

from vat_automation.utils.time import BusinessCalendar

LONDON = tz.gettz("Europe/London")


def london(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware datetime in London civil time"""
    return datetime(year, month, day, hour, minute, tzinfo=LONDON)


def fixed_calendar(now: datetime) -> BusinessCalendar:
    """Business calendar frozen at ``now``"""
    return BusinessCalendar("Europe/London", now_provider=lambda: now)

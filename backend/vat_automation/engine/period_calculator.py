"""Period Calculator - VAT quarter boundaries from a quarter group and a date

Pure functions; no I/O and no clock. Callers pass dates already expressed
in the business timezone.
"""
import re
from datetime import date
from typing import Dict, List, Optional, Tuple, Union
from dateutil.relativedelta import relativedelta

from ..domain.enums import QuarterGroup
from ..domain.errors import InvalidQuarterGroupError, ValidationError
from ..domain.models import VatQuarterInfo
from ..utils.time import add_months, end_of_month


# Month numbers in which each group's quarters end
QUARTER_END_MONTHS: Dict[QuarterGroup, Tuple[int, ...]] = {
    QuarterGroup.JAN_APR_JUL_OCT: (1, 4, 7, 10),
    QuarterGroup.FEB_MAY_AUG_NOV: (2, 5, 8, 11),
    QuarterGroup.MAR_JUN_SEP_DEC: (3, 6, 9, 12),
}

# Month numbers in which the next quarter is created: the month after each end month
CREATION_MONTHS: Dict[QuarterGroup, Tuple[int, ...]] = {
    QuarterGroup.JAN_APR_JUL_OCT: (2, 5, 8, 11),
    QuarterGroup.FEB_MAY_AUG_NOV: (3, 6, 9, 12),
    QuarterGroup.MAR_JUN_SEP_DEC: (4, 7, 10, 1),
}

QUARTER_MONTHS = 3

_PERIOD_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})_to_(\d{4}-\d{2}-\d{2})$")

GroupLike = Union[QuarterGroup, str]


# ============================================================================
# Quarter groups
# ============================================================================

def parse_quarter_group(value: Optional[str]) -> Optional[QuarterGroup]:
    """Quarter group for a stored value, or None when it is not recognised"""
    if not value:
        return None
    try:
        return QuarterGroup(value)
    except ValueError:
        return None


def require_quarter_group(value: GroupLike) -> QuarterGroup:
    """
    Coerce to a QuarterGroup

    Raises:
        InvalidQuarterGroupError: value is not one of the known groups
    """
    if isinstance(value, QuarterGroup):
        return value
    group = parse_quarter_group(value)
    if group is None:
        raise InvalidQuarterGroupError(
            f"Unrecognised VAT quarter group '{value}'",
            details={"quarter_group": value, "allowed": [g.value for g in QuarterGroup]}
        )
    return group


def groups_creating_in_month(month: int) -> List[QuarterGroup]:
    """Groups whose next quarter is created in ``month``"""
    return [group for group, months in CREATION_MONTHS.items() if month in months]


# ============================================================================
# Boundaries
# ============================================================================

def filing_due_date(quarter_end: date) -> date:
    """Last calendar day of the month after the quarter end"""
    return end_of_month(add_months(quarter_end, 1))


def format_quarter_period(start: date, end: date) -> str:
    """Stored period label, e.g. '2024-04-01_to_2024-06-30'"""
    return f"{start.isoformat()}_to_{end.isoformat()}"


def _quarter_ending(group: QuarterGroup, year: int, month: int) -> VatQuarterInfo:
    end = end_of_month(date(year, month, 1))
    start = add_months(end, -(QUARTER_MONTHS - 1))
    return VatQuarterInfo(
        quarter_group=group,
        start_date=start,
        end_date=end,
        filing_due_date=filing_due_date(end),
        quarter_period=format_quarter_period(start, end),
    )


def compute_period(group: GroupLike, reference: date) -> VatQuarterInfo:
    """
    The quarter whose end month is the latest group end month in or before
    the reference month.

    Args:
        group: Quarter group
        reference: Any date; only its year and month are used

    Returns:
        VatQuarterInfo with start, end, filing due date and period label

    Raises:
        InvalidQuarterGroupError: unknown group
    """
    group = require_quarter_group(group)
    end_months = QUARTER_END_MONTHS[group]

    eligible = [month for month in end_months if month <= reference.month]
    if eligible:
        return _quarter_ending(group, reference.year, max(eligible))
    return _quarter_ending(group, reference.year - 1, max(end_months))


def compute_quarter_containing(group: GroupLike, reference: date) -> VatQuarterInfo:
    """The quarter whose span contains the reference date"""
    group = require_quarter_group(group)
    end_months = QUARTER_END_MONTHS[group]

    upcoming = [month for month in end_months if month >= reference.month]
    if upcoming:
        return _quarter_ending(group, reference.year, min(upcoming))
    return _quarter_ending(group, reference.year + 1, min(end_months))


def next_quarter(group: GroupLike, quarter_end: date) -> VatQuarterInfo:
    """The quarter that follows one ending on ``quarter_end``"""
    group = require_quarter_group(group)
    following_end = quarter_end + relativedelta(months=QUARTER_MONTHS, day=31)
    return _quarter_ending(group, following_end.year, following_end.month)


# ============================================================================
# Labels and deadlines
# ============================================================================

def parse_quarter_period(quarter_period: str) -> Tuple[date, date]:
    """
    Split a stored period label into (start, end)

    Raises:
        ValidationError: malformed label
    """
    match = _PERIOD_PATTERN.match(quarter_period or "")
    if not match:
        raise ValidationError(
            f"Invalid quarter period '{quarter_period}'",
            details={"expected_format": "YYYY-MM-DD_to_YYYY-MM-DD"}
        )
    try:
        start = date.fromisoformat(match.group(1))
        end = date.fromisoformat(match.group(2))
    except ValueError as e:
        raise ValidationError(f"Invalid quarter period '{quarter_period}': {e}") from e
    if end <= start:
        raise ValidationError(f"Quarter period '{quarter_period}' ends before it starts")
    return start, end


def format_quarter_period_for_display(quarter_period: str) -> str:
    """'Apr - Jun 2024', or 'Nov 2023 - Jan 2024' across a year boundary"""
    start, end = parse_quarter_period(quarter_period)
    if start.year == end.year:
        return f"{start.strftime('%b')} - {end.strftime('%b')} {end.year}"
    return f"{start.strftime('%b %Y')} - {end.strftime('%b %Y')}"


def is_filing_overdue(due: date, today: date) -> bool:
    """Filing is overdue once the due date has passed"""
    return today > due


def days_until_filing_deadline(due: date, today: date) -> int:
    """Whole days until the deadline; negative once overdue"""
    return (due - today).days

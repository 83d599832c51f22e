"""
Date utilities for rent scheduling
Month truncation, month arithmetic and day counting
"""

from datetime import date, datetime
from dateutil.relativedelta import relativedelta
from typing import Optional


def start_of_month(d: date) -> date:
    """
    Truncate a date to the 1st of its month
    Args:
        d: Any date (or datetime)
    Returns:
        Day 1 of the same month
    """
    if isinstance(d, datetime):
        d = d.date()
    return date(d.year, d.month, 1)


def add_months(d: date, months: int) -> date:
    """
    Add months to a date - similar to EDATE in Excel
    Day of month is clamped to the target month's length
    """
    return d + relativedelta(months=months)


def month_span(from_month: date, to_month: date) -> int:
    """
    Inclusive count of calendar months between two dates

    month_span(2024-01-01, 2024-01-01) == 1
    month_span(2024-01-01, 2024-06-01) == 6

    Returns 0 when to_month is before from_month.
    """
    span = (to_month.year - from_month.year) * 12 + (to_month.month - from_month.month) + 1
    return max(span, 0)


def days_since(d: date, reference: date) -> int:
    """
    Days elapsed since d, counting d itself as day 0
    Never negative
    """
    return max((reference - d).days, 0)


def month_bounds(d: date):
    """Half-open [first, first-of-next) range of the month containing d"""
    first = start_of_month(d)
    return first, add_months(first, 1)


def month_label(d: date) -> str:
    """'January 2024' style label used in schedule descriptions"""
    return d.strftime('%B %Y')


def parse_date(value) -> Optional[date]:
    """
    Parse a stored date value
    Accepts date/datetime objects and ISO strings ('2024-01-17' or '2024-01-17T10:00:00')
    Returns None for empty or unparseable input
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except (ValueError, TypeError):
        return None

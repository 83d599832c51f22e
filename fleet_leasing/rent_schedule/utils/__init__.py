"""
Utility functions for rent scheduling
"""

from .date_utils import (
    start_of_month,
    add_months,
    month_span,
    days_since,
    month_bounds,
    month_label,
    parse_date,
)

__all__ = [
    # Date utilities
    'start_of_month',
    'add_months',
    'month_span',
    'days_since',
    'month_bounds',
    'month_label',
    'parse_date',
]

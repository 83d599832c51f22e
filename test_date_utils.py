"""
Tests for month arithmetic and day counting
"""
from datetime import date, datetime

from fleet_leasing.rent_schedule.utils.date_utils import (
    add_months,
    days_since,
    month_bounds,
    month_label,
    month_span,
    parse_date,
    start_of_month,
)


def test_start_of_month_truncates_to_day_one():
    assert start_of_month(date(2024, 1, 17)) == date(2024, 1, 1)
    assert start_of_month(date(2024, 2, 1)) == date(2024, 2, 1)
    assert start_of_month(datetime(2024, 3, 31, 23, 59)) == date(2024, 3, 1)


def test_add_months_crosses_year_and_clamps_day():
    assert add_months(date(2023, 11, 1), 3) == date(2024, 2, 1)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 3, 1), -3) == date(2023, 12, 1)


def test_month_span_is_inclusive():
    assert month_span(date(2024, 1, 1), date(2024, 1, 1)) == 1
    assert month_span(date(2024, 1, 1), date(2024, 6, 1)) == 6
    assert month_span(date(2023, 11, 1), date(2024, 2, 1)) == 4


def test_month_span_never_negative():
    assert month_span(date(2024, 6, 1), date(2024, 1, 1)) == 0


def test_days_since_counts_the_date_itself_as_zero():
    assert days_since(date(2024, 6, 1), date(2024, 6, 1)) == 0
    assert days_since(date(2024, 6, 1), date(2024, 6, 10)) == 9
    assert days_since(date(2024, 6, 10), date(2024, 6, 1)) == 0


def test_month_bounds_is_half_open():
    assert month_bounds(date(2024, 12, 15)) == (date(2024, 12, 1), date(2025, 1, 1))


def test_month_label():
    assert month_label(date(2024, 1, 1)) == "January 2024"


def test_parse_date_accepts_iso_strings_and_rejects_garbage():
    assert parse_date("2024-01-17") == date(2024, 1, 17)
    assert parse_date("2024-01-17T08:30:00") == date(2024, 1, 17)
    assert parse_date(datetime(2024, 1, 17, 8)) == date(2024, 1, 17)
    assert parse_date(None) is None
    assert parse_date("") is None
    assert parse_date("not-a-date") is None

"""
Tests for the historical / current / next schedule window
"""
from datetime import date

from fleet_leasing.rent_schedule.core.models import PERIOD_CURRENT, PERIOD_HISTORICAL, PERIOD_NEXT
from fleet_leasing.rent_schedule.schedule.window import plan_schedule_window

TODAY = date(2024, 6, 10)


def test_past_lease_covers_start_month_through_current_month():
    targets = plan_schedule_window(date(2024, 1, 17), TODAY)

    assert [t.due_date for t in targets] == [date(2024, m, 1) for m in range(1, 7)]
    assert [t.period for t in targets] == [PERIOD_HISTORICAL] * 5 + [PERIOD_CURRENT]


def test_only_first_month_is_initial():
    targets = plan_schedule_window(date(2024, 1, 17), TODAY)

    assert targets[0].is_initial
    assert not any(t.is_initial for t in targets[1:])


def test_lease_starting_this_month_has_only_current_target():
    targets = plan_schedule_window(date(2024, 6, 25), TODAY)

    assert len(targets) == 1
    assert targets[0].due_date == date(2024, 6, 1)
    assert targets[0].period == PERIOD_CURRENT
    assert targets[0].is_initial


def test_lease_starting_next_month_gets_its_start_month():
    targets = plan_schedule_window(date(2024, 7, 20), TODAY)

    assert len(targets) == 1
    assert targets[0].due_date == date(2024, 7, 1)
    assert targets[0].period == PERIOD_NEXT
    assert targets[0].is_initial


def test_lease_starting_two_months_out_is_deferred():
    assert plan_schedule_window(date(2024, 8, 1), TODAY) == []


def test_window_crosses_year_boundary():
    targets = plan_schedule_window(date(2023, 11, 3), date(2024, 2, 1))

    assert [t.due_date for t in targets] == [
        date(2023, 11, 1), date(2023, 12, 1), date(2024, 1, 1), date(2024, 2, 1),
    ]
    assert targets[-1].period == PERIOD_CURRENT

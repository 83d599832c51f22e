"""
Tests for the historical and live late-fee accrual policies
"""
from datetime import date
from decimal import Decimal

from fleet_leasing.rent_schedule.core.accrual import HistoricalAccrualPolicy, LiveAccrualPolicy


def test_historical_policy_uses_fixed_thirty_days():
    accrual = HistoricalAccrualPolicy().accrue(date(2024, 2, 1), date(2024, 6, 10), Decimal('120'))

    assert accrual.days_overdue == 30
    assert accrual.late_fine_amount == Decimal('3600')
    assert accrual.policy == 'historical'


def test_historical_policy_ignores_reference_date():
    policy = HistoricalAccrualPolicy(overdue_days=30)

    assert policy.days_overdue(date(2024, 2, 1), date(2024, 3, 2)) == 30
    assert policy.days_overdue(date(2024, 2, 1), date(2030, 1, 1)) == 30


def test_historical_policy_day_count_is_configurable():
    accrual = HistoricalAccrualPolicy(overdue_days=28).accrue(date(2024, 2, 1), date(2024, 6, 10), 100)

    assert accrual.days_overdue == 28
    assert accrual.late_fine_amount == Decimal('2800')


def test_live_policy_counts_days_since_the_first():
    policy = LiveAccrualPolicy()

    day_10 = policy.accrue(date(2024, 6, 1), date(2024, 6, 10), Decimal('120'))
    day_15 = policy.accrue(date(2024, 6, 1), date(2024, 6, 15), Decimal('120'))

    assert (day_10.days_overdue, day_10.late_fine_amount) == (9, Decimal('1080'))
    assert (day_15.days_overdue, day_15.late_fine_amount) == (14, Decimal('1680'))
    assert day_10.policy == 'live'


def test_live_policy_is_zero_on_due_date():
    accrual = LiveAccrualPolicy().accrue(date(2024, 6, 1), date(2024, 6, 1), Decimal('120'))

    assert accrual.days_overdue == 0
    assert accrual.late_fine_amount == 0

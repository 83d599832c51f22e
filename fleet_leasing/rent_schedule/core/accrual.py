"""
Late-fee accrual policies

Two ways of answering "how many days is this schedule overdue":
  - HistoricalAccrualPolicy: a month that has already closed counts as a fixed
    number of overdue days (30 by default).
  - LiveAccrualPolicy: the current month counts the days elapsed since the
    due date (the 1st), so the fee grows by one daily rate per day.
"""

from datetime import date
from decimal import Decimal

from fleet_leasing.rent_schedule.core.models import LateFeeAccrual
from fleet_leasing.rent_schedule.utils.date_utils import days_since


class AccrualPolicy:
    """Interface: turn a due date and a reference date into days overdue and a fee"""

    name = "base"

    def days_overdue(self, due_date: date, reference: date) -> int:
        raise NotImplementedError

    def accrue(self, due_date: date, reference: date, daily_late_fee: Decimal) -> LateFeeAccrual:
        days = self.days_overdue(due_date, reference)
        return LateFeeAccrual(
            days_overdue=days,
            late_fine_amount=Decimal(days) * Decimal(daily_late_fee),
            policy=self.name,
        )


class HistoricalAccrualPolicy(AccrualPolicy):
    """Closed month: fixed overdue-day assumption"""

    name = "historical"

    def __init__(self, overdue_days: int = 30):
        self.overdue_days = overdue_days

    def days_overdue(self, due_date: date, reference: date) -> int:
        return self.overdue_days


class LiveAccrualPolicy(AccrualPolicy):
    """Open month: days elapsed since the due date (due date itself is day 0)"""

    name = "live"

    def days_overdue(self, due_date: date, reference: date) -> int:
        return days_since(due_date, reference)

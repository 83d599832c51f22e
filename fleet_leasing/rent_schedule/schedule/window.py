"""
Schedule window policy
Decides which calendar months a lease should have schedules for on a given run date,
and labels each one historical / current / next
"""

from datetime import date
from typing import List

from fleet_leasing.rent_schedule.core.models import (
    PERIOD_CURRENT,
    PERIOD_HISTORICAL,
    PERIOD_NEXT,
    ScheduleTarget,
)
from fleet_leasing.rent_schedule.utils.date_utils import add_months, month_span, start_of_month


def plan_schedule_window(start_date: date, today: date) -> List[ScheduleTarget]:
    """
    Months to materialize for a lease, in order.

    - Lease started at or before the current month: every month from the start
      month up to the current month (the window is half-open at next month).
      Months before the current month are historical.
    - Lease starting next month: just that month, tagged initial.
    - Lease starting later: nothing this run.

    Due dates are always day 1 of their month, whatever the lease's start day.
    """
    start = start_of_month(start_date)
    current = start_of_month(today)
    next_month = add_months(current, 1)

    if start <= current:
        targets = []
        for i in range(month_span(start, current)):
            due = add_months(start, i)
            period = PERIOD_HISTORICAL if due < current else PERIOD_CURRENT
            targets.append(ScheduleTarget(due_date=due, period=period, is_initial=(i == 0)))
        return targets

    if start == next_month:
        return [ScheduleTarget(due_date=start, period=PERIOD_NEXT, is_initial=True)]

    return []

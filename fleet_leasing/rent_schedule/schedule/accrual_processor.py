"""
Current-Month Accrual Processor
Keeps the late-fee row for the running month in step with the calendar
"""

from dataclasses import dataclass
from datetime import date
import logging
import sqlite3

from fleet_leasing import database
from fleet_leasing.rent_schedule.core.accrual import AccrualPolicy, LiveAccrualPolicy
from fleet_leasing.rent_schedule.core.models import (
    PERIOD_CURRENT,
    LatePaymentFee,
    LeaseAgreement,
    ScheduleTarget,
    late_fee_description,
)
from fleet_leasing.rent_schedule.schedule.materializer import ScheduleMaterializer
from fleet_leasing.rent_schedule.utils.date_utils import start_of_month

logger = logging.getLogger(__name__)


@dataclass
class AccrualResult:
    schedule_created: bool = False
    late_fee_changed: bool = False
    skipped_reason: str = ""
    error: str = ""


class CurrentMonthAccrualProcessor:
    """
    On day N of the month (N > 1) with no Income row for the month, the lease's
    late-fee row for the month holds N-1 overdue days and (N-1) * daily_late_fee.

    Repeated runs on the same day converge; a stored value that is already at
    or beyond today's count is left alone.
    """

    def __init__(self, policy: AccrualPolicy = None, materializer: ScheduleMaterializer = None):
        self.policy = policy or LiveAccrualPolicy()
        self.materializer = materializer or ScheduleMaterializer()

    @staticmethod
    def days_elapsed(today: date) -> int:
        """Days since the 1st, 0 on the 1st itself"""
        return today.day - 1

    def process(self, conn, lease: LeaseAgreement, today: date) -> AccrualResult:
        result = AccrualResult()
        if self.days_elapsed(today) <= 0:
            result.skipped_reason = "first day of month"
            return result
        if lease.start_date > today:
            result.skipped_reason = "lease not started"
            return result

        current_month = start_of_month(today)
        target = ScheduleTarget(
            due_date=current_month,
            period=PERIOD_CURRENT,
            is_initial=start_of_month(lease.start_date) == current_month,
        )
        try:
            result.schedule_created = self.materializer.ensure_schedule(conn, lease, target)
        except sqlite3.Error as e:
            logger.error(f"❌ Failed to ensure current schedule for lease {lease.label}: {e}")
            result.error = f"schedule {current_month} not created: {e}"
            return result

        try:
            result.late_fee_changed = self._accrue(conn, lease, current_month, today)
        except sqlite3.Error as e:
            logger.error(f"❌ Failed to accrue late fee for lease {lease.label}: {e}")
            result.error = f"late fee {current_month} not accrued: {e}"
        return result

    def _accrue(self, conn, lease: LeaseAgreement, due_date: date, today: date) -> bool:
        if database.has_income_in_month(conn, lease.id, due_date):
            logger.debug(f"✅ Lease {lease.label} has paid for {due_date:%B %Y}")
            return False

        accrual = self.policy.accrue(due_date, today, lease.daily_late_fee)
        existing = database.get_late_fee(conn, lease.id, due_date)
        if existing:
            if existing['payment_date']:
                return False
            if existing['days_overdue'] >= accrual.days_overdue:
                logger.debug(f"⏭️ Late fee for lease {lease.label} already at "
                             f"{existing['days_overdue']} days")
                return False

        fee = LatePaymentFee(
            lease_id=lease.id,
            original_due_date=due_date,
            amount=lease.rent_amount,
            days_overdue=accrual.days_overdue,
            late_fine_amount=accrual.late_fine_amount,
            description=late_fee_description(due_date),
        )
        changed = database.upsert_late_fee_accrual(conn, fee)
        if changed:
            action = "Updated" if existing else "Created"
            logger.info(f"💸 {action} late fee for lease {lease.label}: "
                        f"{accrual.days_overdue} days overdue, fee {accrual.late_fine_amount}")
        return changed

"""
Historical Late-Fee Backfiller
Adds a late-fee row for closed months that were never paid
"""

from datetime import date
from typing import Iterable, List, Optional
import logging
import sqlite3

from fleet_leasing import database
from fleet_leasing.rent_schedule.core.accrual import AccrualPolicy, HistoricalAccrualPolicy
from fleet_leasing.rent_schedule.core.models import (
    LatePaymentFee,
    LeaseAgreement,
    ScheduleTarget,
    late_fee_description,
)

logger = logging.getLogger(__name__)


class HistoricalLateFeeBackfiller:
    """
    For each historical month with a schedule: if the lease has no Income row
    dated inside that month and no late-fee row for that due date, create one
    using the historical accrual policy.
    """

    def __init__(self, policy: AccrualPolicy = None):
        self.policy = policy or HistoricalAccrualPolicy()

    def backfill(self, conn, lease: LeaseAgreement, targets: Iterable[ScheduleTarget], today: date,
                 errors: Optional[List[str]] = None) -> int:
        """Returns the number of late-fee rows created"""
        created_count = 0
        for target in targets:
            if not target.is_historical:
                continue
            try:
                if self._create_if_unpaid(conn, lease, target.due_date, today):
                    created_count += 1
            except sqlite3.Error as e:
                message = f"late fee {target.due_date} not backfilled: {e}"
                logger.error(f"❌ Failed to backfill late fee for lease {lease.label}: {message}")
                if errors is not None:
                    errors.append(message)
        return created_count

    def _create_if_unpaid(self, conn, lease: LeaseAgreement, due_date: date, today: date) -> bool:
        if database.has_income_in_month(conn, lease.id, due_date):
            return False
        if database.get_late_fee(conn, lease.id, due_date):
            return False

        accrual = self.policy.accrue(due_date, today, lease.daily_late_fee)
        fee = LatePaymentFee(
            lease_id=lease.id,
            original_due_date=due_date,
            amount=lease.rent_amount,
            days_overdue=accrual.days_overdue,
            late_fine_amount=accrual.late_fine_amount,
            description=late_fee_description(due_date),
        )
        created = database.insert_late_fee(conn, fee)
        if created:
            logger.info(f"💸 Backfilled late fee for lease {lease.label} {due_date:%B %Y}: "
                        f"{accrual.days_overdue} days, {accrual.late_fine_amount}")
        return created

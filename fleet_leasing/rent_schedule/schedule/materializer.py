"""
Schedule Materializer
Creates the missing monthly payment schedules for one lease
"""

from datetime import date
from typing import List, Optional, Set, Tuple
import logging
import sqlite3

from fleet_leasing import database
from fleet_leasing.rent_schedule.core.models import (
    LeaseAgreement,
    PaymentSchedule,
    ScheduleTarget,
    schedule_description,
)

logger = logging.getLogger(__name__)


class ScheduleMaterializer:
    """
    Given a lease, its planned months and the due dates it already has,
    insert a pending schedule for each month that is missing.

    A failed write is logged and that month skipped; other months and leases
    carry on.
    """

    def materialize(self, conn, lease: LeaseAgreement, targets: List[ScheduleTarget],
                    existing_due_dates: Set[date], errors: Optional[List[str]] = None) -> List[Tuple[ScheduleTarget, bool]]:
        """
        Returns (target, created) for every target that is confirmed present
        after this call. Targets whose write failed are left out.
        """
        confirmed = []
        for target in targets:
            if target.due_date in existing_due_dates:
                confirmed.append((target, False))
                continue

            schedule = PaymentSchedule(
                lease_id=lease.id,
                due_date=target.due_date,
                amount=lease.rent_amount,
                description=schedule_description(target.due_date, target.is_initial),
            )
            try:
                created = database.insert_payment_schedule(conn, schedule)
            except sqlite3.Error as e:
                message = f"schedule {target.due_date} not created: {e}"
                logger.error(f"❌ Failed to create schedule for lease {lease.label}: {message}")
                if errors is not None:
                    errors.append(message)
                continue

            if created:
                logger.info(f"📅 Created {target.period} schedule for lease {lease.label}: {schedule.description}")
            else:
                logger.debug(f"⏭️ Schedule for lease {lease.label} due {target.due_date} already exists")
            existing_due_dates.add(target.due_date)
            confirmed.append((target, created))
        return confirmed

    def ensure_schedule(self, conn, lease: LeaseAgreement, target: ScheduleTarget) -> bool:
        """
        Make sure one month has a schedule. Returns True if it had to be created.
        Write errors propagate to the caller.
        """
        schedule = PaymentSchedule(
            lease_id=lease.id,
            due_date=target.due_date,
            amount=lease.rent_amount,
            description=schedule_description(target.due_date, target.is_initial),
        )
        created = database.insert_payment_schedule(conn, schedule)
        if created:
            logger.info(f"📅 Created {target.period} schedule for lease {lease.label}: {schedule.description}")
        return created

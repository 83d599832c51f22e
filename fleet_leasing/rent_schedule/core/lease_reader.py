"""
Lease Reader
Loads the active-lease snapshot a run works from
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional
import logging
import sqlite3

from fleet_leasing import database
from fleet_leasing.rent_schedule.core.errors import InvalidLeaseError, LeaseReadError
from fleet_leasing.rent_schedule.core.models import LEASE_STATUS_ACTIVE, LeaseAgreement
from fleet_leasing.rent_schedule.utils.date_utils import parse_date

logger = logging.getLogger(__name__)


def _to_decimal(value, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == '':
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


class LeaseReader:
    """
    Reads leases with status 'active'.
    Any data-store failure is raised as LeaseReadError: without a consistent
    snapshot no further work in the run is safe.
    """

    def __init__(self, default_daily_late_fee=120):
        self.default_daily_late_fee = Decimal(str(default_daily_late_fee))

    def read_active(self) -> List[dict]:
        """All active lease rows"""
        try:
            with database.get_db_connection() as conn:
                rows = database.get_active_leases(conn)
        except sqlite3.Error as e:
            raise LeaseReadError(f"Could not read active leases: {e}") from e
        logger.info(f"📋 Found {len(rows)} active leases")
        return rows

    def read_one(self, lease_id: str) -> List[dict]:
        """Snapshot scoped to a single agreement; it must exist and be active"""
        try:
            with database.get_db_connection() as conn:
                row = database.get_lease(conn, lease_id)
        except sqlite3.Error as e:
            raise LeaseReadError(f"Could not read agreement {lease_id}: {e}") from e
        if not row:
            raise LeaseReadError(f"Agreement not found: {lease_id}")
        if row['status'] != LEASE_STATUS_ACTIVE:
            raise LeaseReadError(f"Agreement {lease_id} is not active (status={row['status']})")
        return [row]

    def to_agreement(self, row: dict) -> LeaseAgreement:
        """
        Build a LeaseAgreement from a lease row.
        Raises InvalidLeaseError when start_date is missing or unparseable.
        """
        start = parse_date(row.get('start_date'))
        if start is None:
            raise InvalidLeaseError(row.get('id'), f"missing or invalid start_date {row.get('start_date')!r}")

        rent = _to_decimal(row.get('rent_amount'))
        if rent is None or rent <= 0:
            raise InvalidLeaseError(row.get('id'), f"missing or non-positive rent_amount {row.get('rent_amount')!r}")

        daily_fee = _to_decimal(row.get('daily_late_fee'))
        if daily_fee is None or daily_fee <= 0:
            daily_fee = self.default_daily_late_fee

        return LeaseAgreement(
            id=row['id'],
            agreement_number=row.get('agreement_number') or "",
            rent_amount=rent,
            start_date=start,
            daily_late_fee=daily_fee,
            status=row.get('status', LEASE_STATUS_ACTIVE),
        )

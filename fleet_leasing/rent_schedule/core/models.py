"""
Data models for the rent schedule engine
Leases, payment schedules, late-fee rows and the run summary
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import date
from decimal import Decimal

from fleet_leasing.rent_schedule.utils.date_utils import month_label


# Unified payment row types
PAYMENT_TYPE_INCOME = 'Income'
PAYMENT_TYPE_LATE_FEE = 'LATE_PAYMENT_FEE'

# Statuses
LEASE_STATUS_ACTIVE = 'active'
SCHEDULE_STATUS_PENDING = 'pending'

# Schedule window periods
PERIOD_HISTORICAL = 'historical'
PERIOD_CURRENT = 'current'
PERIOD_NEXT = 'next'


def schedule_description(due_date: date, is_initial: bool = False) -> str:
    """'Initial rent payment for January 2024' / 'Monthly rent payment for ...'"""
    kind = 'Initial' if is_initial else 'Monthly'
    return f"{kind} rent payment for {month_label(due_date)}"


def late_fee_description(due_date: date) -> str:
    return f"Auto-generated late payment record for {month_label(due_date)}"


@dataclass
class LeaseAgreement:
    """Active lease as seen by the engine (read-only input)"""
    id: str
    agreement_number: str = ""
    rent_amount: Decimal = Decimal('0')
    start_date: Optional[date] = None
    daily_late_fee: Decimal = Decimal('120')
    status: str = LEASE_STATUS_ACTIVE

    @property
    def label(self) -> str:
        """Agreement number for log lines, falling back to the id"""
        return self.agreement_number or str(self.id)


@dataclass
class ScheduleTarget:
    """One calendar month the engine wants a schedule for"""
    due_date: date
    period: str  # historical, current or next
    is_initial: bool = False

    @property
    def is_historical(self) -> bool:
        return self.period == PERIOD_HISTORICAL


@dataclass
class PaymentSchedule:
    """Materialized monthly obligation"""
    lease_id: str
    due_date: date
    amount: Decimal
    description: str
    status: str = SCHEDULE_STATUS_PENDING
    id: Optional[int] = None


@dataclass
class LateFeeAccrual:
    """Days overdue and fee amount produced by an accrual policy"""
    days_overdue: int
    late_fine_amount: Decimal
    policy: str = ""


@dataclass
class LatePaymentFee:
    """Unified payment row of type LATE_PAYMENT_FEE"""
    lease_id: str
    original_due_date: date
    amount: Decimal
    days_overdue: int
    late_fine_amount: Decimal
    amount_paid: Decimal = Decimal('0')
    balance: Optional[Decimal] = None
    payment_date: Optional[date] = None
    description: str = ""
    status: str = SCHEDULE_STATUS_PENDING
    type: str = PAYMENT_TYPE_LATE_FEE
    id: Optional[int] = None

    def __post_init__(self):
        if self.balance is None:
            self.balance = self.amount - self.amount_paid


@dataclass
class LeaseOutcome:
    """Counters and errors for one lease's unit of work"""
    lease_id: str
    agreement_number: str = ""
    processed: bool = False
    skipped: bool = False
    cancelled: bool = False
    schedules_created: int = 0
    historical_schedules_created: int = 0
    late_fees_processed: int = 0
    historical_late_fees_created: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """Synchronous result of one engine run"""
    success: bool = True
    agreements_processed: int = 0
    agreements_skipped: int = 0
    schedules_created: int = 0
    historical_schedules_created: int = 0
    late_fees_processed: int = 0
    historical_late_fees_created: int = 0
    reconciliation_ok: Optional[bool] = None
    cancelled: bool = False
    errors: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def add_outcome(self, outcome: LeaseOutcome):
        """Fold one lease's counters into the run totals"""
        if outcome.processed:
            self.agreements_processed += 1
        if outcome.skipped:
            self.agreements_skipped += 1
        self.schedules_created += outcome.schedules_created
        self.historical_schedules_created += outcome.historical_schedules_created
        self.late_fees_processed += outcome.late_fees_processed
        self.historical_late_fees_created += outcome.historical_late_fees_created
        for message in outcome.errors:
            self.errors.append({
                'lease_id': outcome.lease_id,
                'agreement_number': outcome.agreement_number,
                'error': message,
            })

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses"""
        result = {
            'success': self.success,
            'agreements_processed': self.agreements_processed,
            'agreements_skipped': self.agreements_skipped,
            'schedules_created': self.schedules_created,
            'historical_schedules_created': self.historical_schedules_created,
            'late_fees_processed': self.late_fees_processed,
            'historical_late_fees_created': self.historical_late_fees_created,
            'reconciliation_ok': self.reconciliation_ok,
            'cancelled': self.cancelled,
            'errors': self.errors,
        }
        if self.error:
            result['error'] = self.error
        return result

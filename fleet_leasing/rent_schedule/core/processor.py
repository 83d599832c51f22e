"""
Rent Schedule Engine
One run: read active leases, materialize schedules, backfill historical late
fees, accrue the current month, then hand over to the reconciliation pass.

Run flow:
  1. Take the engine lock (single-flight)
  2. Read the lease snapshot (fatal on failure)
  3. Per lease, in its own unit of work:
       plan window -> materialize schedules -> backfill historical fees -> live accrual
     then refresh the engine lock
  4. Reconciliation pass (best effort)
  5. Release the lock, return RunSummary
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, List, Optional
import logging
import sqlite3
import threading
import uuid

from fleet_leasing import database
from fleet_leasing.config import Config, config_as_dict
from fleet_leasing.rent_schedule.core.accrual import HistoricalAccrualPolicy, LiveAccrualPolicy
from fleet_leasing.rent_schedule.core.errors import InvalidLeaseError, LeaseReadError, RunInProgressError
from fleet_leasing.rent_schedule.core.lease_reader import LeaseReader
from fleet_leasing.rent_schedule.core.models import LeaseOutcome, RunSummary
from fleet_leasing.rent_schedule.schedule.accrual_processor import CurrentMonthAccrualProcessor
from fleet_leasing.rent_schedule.schedule.backfill import HistoricalLateFeeBackfiller
from fleet_leasing.rent_schedule.schedule.materializer import ScheduleMaterializer
from fleet_leasing.rent_schedule.schedule.window import plan_schedule_window

logger = logging.getLogger(__name__)

LOCK_NAME = 'rent_schedule_engine'


class RentScheduleEngine:
    """
    Batch engine for rent schedules and late-fee accrual.
    The reference date is always passed in; nothing here reads the clock.
    """

    def __init__(self,
                 reader: LeaseReader = None,
                 materializer: ScheduleMaterializer = None,
                 backfiller: HistoricalLateFeeBackfiller = None,
                 accrual_processor: CurrentMonthAccrualProcessor = None,
                 reconcile: Callable = None,
                 workers: int = 1,
                 lock_ttl_seconds: int = 3600):
        self.reader = reader or LeaseReader()
        self.materializer = materializer or ScheduleMaterializer()
        self.backfiller = backfiller or HistoricalLateFeeBackfiller()
        self.accrual_processor = accrual_processor or CurrentMonthAccrualProcessor(
            materializer=self.materializer)
        self.reconcile = reconcile or database.generate_missing_payment_records
        self.workers = max(1, int(workers))
        self.lock_ttl_seconds = lock_ttl_seconds

    @classmethod
    def from_config(cls, settings=None, **overrides):
        """
        Build an engine from a settings mapping (Flask app.config or
        config_as_dict()); keyword arguments win
        """
        settings = settings if settings is not None else config_as_dict(Config)
        materializer = ScheduleMaterializer()
        options = dict(
            reader=LeaseReader(default_daily_late_fee=settings['DEFAULT_DAILY_LATE_FEE']),
            materializer=materializer,
            backfiller=HistoricalLateFeeBackfiller(
                HistoricalAccrualPolicy(overdue_days=settings['HISTORICAL_OVERDUE_DAYS'])),
            accrual_processor=CurrentMonthAccrualProcessor(
                policy=LiveAccrualPolicy(), materializer=materializer),
            workers=settings['ENGINE_WORKERS'],
            lock_ttl_seconds=settings['RUN_LOCK_TTL_SECONDS'],
        )
        options.update(overrides)
        return cls(**options)

    def run(self, today: date, lease_id: Optional[str] = None, historical_only: bool = False,
            cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """
        Execute one run for the given reference date.

        Args:
            today: Reference date for month boundaries and day counts
            lease_id: Restrict the run to a single agreement
            historical_only: Materialize and backfill, skip current-month accrual
            cancel_event: When set, no further lease is started
        Raises:
            RunInProgressError: another run holds the engine lock
        """
        owner = str(uuid.uuid4())
        try:
            acquired = database.acquire_run_lock(LOCK_NAME, owner, self.lock_ttl_seconds)
        except sqlite3.Error as e:
            logger.error(f"❌ Could not take engine lock: {e}")
            return RunSummary(success=False, error=f"Could not take engine lock: {e}")
        if not acquired:
            logger.warning("🔒 Rent schedule run already in progress")
            raise RunInProgressError("A rent schedule run is already in progress")

        try:
            return self._run_locked(today, lease_id, historical_only, cancel_event, owner)
        finally:
            try:
                database.release_run_lock(LOCK_NAME, owner)
            except sqlite3.Error as e:
                logger.error(f"❌ Could not release engine lock: {e}")

    def _run_locked(self, today, lease_id, historical_only, cancel_event, owner) -> RunSummary:
        summary = RunSummary()
        scope = f"agreement {lease_id}" if lease_id else "all active agreements"
        logger.info(f"🚀 Rent schedule run for {today} ({scope}, historical_only={historical_only})")

        try:
            rows = self.reader.read_one(lease_id) if lease_id else self.reader.read_active()
        except LeaseReadError as e:
            logger.error(f"❌ {e}")
            summary.success = False
            summary.error = str(e)
            return summary

        for outcome in self._process_all(rows, today, historical_only, cancel_event, owner):
            summary.add_outcome(outcome)
            if outcome.cancelled:
                summary.cancelled = True

        if summary.cancelled:
            summary.success = False
            summary.error = f"Run cancelled after {summary.agreements_processed} agreements"
            logger.warning(f"🛑 {summary.error}")
            return summary

        summary.reconciliation_ok = self._reconcile(today)

        logger.info(
            f"🎉 Rent schedule run completed: {summary.agreements_processed} agreements, "
            f"{summary.schedules_created} schedules, "
            f"{summary.historical_schedules_created} historical schedules, "
            f"{summary.late_fees_processed} late fees, {len(summary.errors)} errors"
        )
        return summary

    def _process_all(self, rows: List[dict], today, historical_only, cancel_event, owner) -> List[LeaseOutcome]:
        # one task per lease keeps every write for a lease on one worker
        unique_rows = list({row['id']: row for row in rows}.values())

        def task(row):
            outcome = self.process_lease(row, today, historical_only, cancel_event)
            if not outcome.cancelled:
                self._heartbeat(owner)
            return outcome

        if self.workers == 1:
            return [task(row) for row in unique_rows]

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(task, unique_rows))

    def _heartbeat(self, owner: str):
        """Keep the engine lock fresh between leases; the TTL only has to outlast one lease"""
        try:
            if not database.refresh_run_lock(LOCK_NAME, owner):
                logger.warning("⚠️ Engine lock is no longer held by this run")
        except sqlite3.Error as e:
            logger.error(f"❌ Could not refresh engine lock: {e}")

    def process_lease(self, row: dict, today: date, historical_only: bool = False,
                      cancel_event: Optional[threading.Event] = None) -> LeaseOutcome:
        """Process one lease row as a single unit of work"""
        outcome = LeaseOutcome(lease_id=row.get('id'), agreement_number=row.get('agreement_number') or "")
        if cancel_event is not None and cancel_event.is_set():
            outcome.cancelled = True
            return outcome

        try:
            lease = self.reader.to_agreement(row)
        except InvalidLeaseError as e:
            logger.warning(f"⚠️ Skipping lease {outcome.agreement_number or outcome.lease_id}: {e.reason}")
            outcome.skipped = True
            return outcome

        errors = []
        schedules = historical_schedules = late_fees = historical_fees = 0
        try:
            with database.get_db_connection(immediate=True) as conn:
                existing = database.get_schedule_due_dates(conn, lease.id)
                targets = plan_schedule_window(lease.start_date, today)
                confirmed = self.materializer.materialize(conn, lease, targets, existing, errors)

                for target, created in confirmed:
                    if not created:
                        continue
                    if target.is_historical:
                        historical_schedules += 1
                    else:
                        schedules += 1

                historical_fees = self.backfiller.backfill(
                    conn, lease, [target for target, _ in confirmed], today, errors)
                late_fees += historical_fees

                if not historical_only:
                    accrual = self.accrual_processor.process(conn, lease, today)
                    if accrual.schedule_created:
                        schedules += 1
                    if accrual.late_fee_changed:
                        late_fees += 1
                    if accrual.error:
                        errors.append(accrual.error)
        except Exception as e:
            # the unit of work was rolled back, nothing from this lease counts
            logger.exception(f"❌ Lease {lease.label} rolled back: {e}")
            outcome.errors.append(str(e))
            return outcome

        outcome.processed = True
        outcome.schedules_created = schedules
        outcome.historical_schedules_created = historical_schedules
        outcome.late_fees_processed = late_fees
        outcome.historical_late_fees_created = historical_fees
        outcome.errors.extend(errors)
        return outcome

    def _reconcile(self, today: date) -> bool:
        """Best-effort consistency pass; failure is logged only"""
        try:
            with database.get_db_connection(immediate=True) as conn:
                self.reconcile(conn, today)
        except Exception as e:
            logger.error(f"❌ Reconciliation pass failed: {e}")
            return False
        logger.info("🧩 Reconciliation pass completed")
        return True

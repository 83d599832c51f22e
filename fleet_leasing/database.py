"""
Database layer - leases, payment schedules and unified payments
Every read/write the rent schedule engine performs goes through here
"""
import sqlite3
import uuid
from typing import Dict, List, Optional, Set
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import logging

from fleet_leasing.config import Config
from fleet_leasing.rent_schedule.core.models import (
    LEASE_STATUS_ACTIVE,
    PAYMENT_TYPE_INCOME,
    PAYMENT_TYPE_LATE_FEE,
    SCHEDULE_STATUS_PENDING,
    LatePaymentFee,
    PaymentSchedule,
    schedule_description,
)
from fleet_leasing.rent_schedule.utils.date_utils import (
    add_months,
    month_bounds,
    month_span,
    parse_date,
    start_of_month,
)

logger = logging.getLogger(__name__)

DATABASE_PATH = str(Config.DATABASE_PATH)

sqlite3.register_adapter(Decimal, str)


@contextmanager
def get_db_connection(db_path: Optional[str] = None, immediate: bool = False):
    """
    Context manager for database connections (one unit of work)
    immediate=True takes the write lock up front so concurrent writers queue
    on the busy timeout instead of failing on lock upgrade.
    """
    conn = sqlite3.connect(db_path or DATABASE_PATH, timeout=Config.DB_TIMEOUT)
    conn.row_factory = sqlite3.Row
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database():
    """Initialize database tables - leases, schedules, unified payments, locks"""
    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS leases (
                id TEXT PRIMARY KEY,
                agreement_number TEXT,
                customer_id TEXT,
                vehicle_id TEXT,
                rent_amount REAL NOT NULL,
                start_date DATE,
                end_date DATE,
                daily_late_fee REAL,
                status TEXT DEFAULT 'pending',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # One schedule per lease per calendar month
        conn.execute("""
            CREATE TABLE IF NOT EXISTS payment_schedules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                lease_id TEXT NOT NULL,
                due_date DATE NOT NULL,
                amount REAL NOT NULL,
                status TEXT DEFAULT 'pending',
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (lease_id, due_date),
                FOREIGN KEY (lease_id) REFERENCES leases (id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS unified_payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                lease_id TEXT NOT NULL,
                type TEXT NOT NULL,
                amount REAL NOT NULL DEFAULT 0,
                amount_paid REAL NOT NULL DEFAULT 0,
                balance REAL NOT NULL DEFAULT 0,
                payment_date TIMESTAMP,
                original_due_date DATE,
                status TEXT DEFAULT 'pending',
                description TEXT,
                payment_method TEXT,
                late_fine_amount REAL DEFAULT 0,
                days_overdue INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (lease_id) REFERENCES leases (id)
            )
        """)

        # One late-fee row per lease per due month
        conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_unified_payments_late_fee
            ON unified_payments (lease_id, original_due_date)
            WHERE type = 'LATE_PAYMENT_FEE'
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS ix_unified_payments_lease_date
            ON unified_payments (lease_id, type, payment_date)
        """)

        # Advisory lock so two engine runs never overlap
        conn.execute("""
            CREATE TABLE IF NOT EXISTS engine_locks (
                name TEXT PRIMARY KEY,
                owner TEXT NOT NULL,
                acquired_at TEXT NOT NULL
            )
        """)
        logger.info("✅ Database initialized (leases, payment_schedules, unified_payments)")


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


# ============ LEASES ============
def save_lease(data: Dict) -> str:
    """Insert or update a lease row. Returns the lease id."""
    lease_id = data.get('id') or str(uuid.uuid4())
    with get_db_connection() as conn:
        conn.execute("""
            INSERT INTO leases (id, agreement_number, customer_id, vehicle_id, rent_amount,
                                start_date, end_date, daily_late_fee, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                agreement_number = excluded.agreement_number,
                customer_id = excluded.customer_id,
                vehicle_id = excluded.vehicle_id,
                rent_amount = excluded.rent_amount,
                start_date = excluded.start_date,
                end_date = excluded.end_date,
                daily_late_fee = excluded.daily_late_fee,
                status = excluded.status,
                updated_at = CURRENT_TIMESTAMP
        """, (
            lease_id,
            data.get('agreement_number'),
            data.get('customer_id'),
            data.get('vehicle_id'),
            data.get('rent_amount'),
            _iso(data.get('start_date')),
            _iso(data.get('end_date')),
            data.get('daily_late_fee'),
            data.get('status', 'pending'),
        ))
    return lease_id


def get_active_leases(conn) -> List[Dict]:
    """Every lease with status 'active', with the fields scheduling needs"""
    rows = conn.execute("""
        SELECT id, agreement_number, rent_amount, start_date, daily_late_fee, status
        FROM leases
        WHERE status = ?
        ORDER BY agreement_number, id
    """, (LEASE_STATUS_ACTIVE,)).fetchall()
    return [dict(row) for row in rows]


def get_lease(conn, lease_id: str) -> Optional[Dict]:
    """Single lease by id, regardless of status"""
    row = conn.execute("""
        SELECT id, agreement_number, rent_amount, start_date, daily_late_fee, status
        FROM leases WHERE id = ?
    """, (lease_id,)).fetchone()
    return dict(row) if row else None


# ============ PAYMENT SCHEDULES ============
def get_schedule_due_dates(conn, lease_id: str) -> Set[date]:
    """Month-truncated due dates of every schedule the lease already has"""
    rows = conn.execute(
        "SELECT due_date FROM payment_schedules WHERE lease_id = ?", (lease_id,)
    ).fetchall()
    due_dates = set()
    for row in rows:
        due = parse_date(row['due_date'])
        if due:
            due_dates.add(start_of_month(due))
    return due_dates


def insert_payment_schedule(conn, schedule: PaymentSchedule) -> bool:
    """
    Insert a schedule row unless one already exists for that lease+month.
    Returns True when a row was created, False when the unique key already held one.
    """
    cursor = conn.execute("""
        INSERT INTO payment_schedules (lease_id, due_date, amount, status, description)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (lease_id, due_date) DO NOTHING
    """, (
        schedule.lease_id,
        schedule.due_date.isoformat(),
        schedule.amount,
        schedule.status,
        schedule.description,
    ))
    return cursor.rowcount > 0


def get_payment_schedules(lease_id: str) -> List[Dict]:
    """All schedules of a lease ordered by due date"""
    with get_db_connection() as conn:
        rows = conn.execute("""
            SELECT id, lease_id, due_date, amount, status, description, created_at
            FROM payment_schedules
            WHERE lease_id = ?
            ORDER BY due_date ASC
        """, (lease_id,)).fetchall()
        return [dict(row) for row in rows]


# ============ UNIFIED PAYMENTS ============
def record_income_payment(lease_id: str, amount, payment_date, payment_method: str = 'cash',
                          description: str = None) -> int:
    """Record a rent payment as an Income row (`fleet-leasing record-payment`)"""
    with get_db_connection() as conn:
        cursor = conn.execute("""
            INSERT INTO unified_payments (lease_id, type, amount, amount_paid, balance,
                                          payment_date, status, description, payment_method)
            VALUES (?, ?, ?, ?, 0, ?, 'completed', ?, ?)
        """, (
            lease_id,
            PAYMENT_TYPE_INCOME,
            amount,
            amount,
            _iso(payment_date),
            description or 'Rent payment',
            payment_method,
        ))
        return cursor.lastrowid


def has_income_between(conn, lease_id: str, start: date, end: date) -> bool:
    """True if an Income row for the lease has payment_date in [start, end)"""
    row = conn.execute("""
        SELECT 1 FROM unified_payments
        WHERE lease_id = ? AND type = ?
          AND payment_date >= ? AND payment_date < ?
        LIMIT 1
    """, (lease_id, PAYMENT_TYPE_INCOME, start.isoformat(), end.isoformat())).fetchone()
    return row is not None


def has_income_in_month(conn, lease_id: str, month: date) -> bool:
    first, next_first = month_bounds(month)
    return has_income_between(conn, lease_id, first, next_first)


def get_late_fee(conn, lease_id: str, original_due_date: date) -> Optional[Dict]:
    """The LATE_PAYMENT_FEE row for a lease+due month, if any"""
    row = conn.execute("""
        SELECT * FROM unified_payments
        WHERE lease_id = ? AND type = ? AND original_due_date = ?
    """, (lease_id, PAYMENT_TYPE_LATE_FEE, original_due_date.isoformat())).fetchone()
    return dict(row) if row else None


def insert_late_fee(conn, fee: LatePaymentFee) -> bool:
    """
    Create a late-fee row unless one exists for the same lease+due month.
    Returns True when a row was created.
    """
    cursor = conn.execute("""
        INSERT INTO unified_payments (lease_id, type, amount, amount_paid, balance, payment_date,
                                      original_due_date, status, description,
                                      late_fine_amount, days_overdue)
        VALUES (?, ?, ?, ?, ?, NULL, ?, ?, ?, ?, ?)
        ON CONFLICT (lease_id, original_due_date) WHERE type = 'LATE_PAYMENT_FEE' DO NOTHING
    """, _late_fee_params(fee))
    return cursor.rowcount > 0


def upsert_late_fee_accrual(conn, fee: LatePaymentFee) -> bool:
    """
    Create the late-fee row, or move an unpaid one forward to the new accrual.
    The stored days_overdue never decreases. Returns True when a row changed.
    """
    cursor = conn.execute("""
        INSERT INTO unified_payments (lease_id, type, amount, amount_paid, balance, payment_date,
                                      original_due_date, status, description,
                                      late_fine_amount, days_overdue)
        VALUES (?, ?, ?, ?, ?, NULL, ?, ?, ?, ?, ?)
        ON CONFLICT (lease_id, original_due_date) WHERE type = 'LATE_PAYMENT_FEE'
        DO UPDATE SET
            days_overdue = excluded.days_overdue,
            late_fine_amount = excluded.late_fine_amount,
            updated_at = CURRENT_TIMESTAMP
        WHERE unified_payments.days_overdue < excluded.days_overdue
          AND unified_payments.payment_date IS NULL
    """, _late_fee_params(fee))
    return cursor.rowcount > 0


def _late_fee_params(fee: LatePaymentFee):
    return (
        fee.lease_id,
        PAYMENT_TYPE_LATE_FEE,
        fee.amount,
        fee.amount_paid,
        fee.balance,
        fee.original_due_date.isoformat(),
        fee.status,
        fee.description,
        fee.late_fine_amount,
        fee.days_overdue,
    )


def get_late_fees(lease_id: str) -> List[Dict]:
    """All LATE_PAYMENT_FEE rows of a lease ordered by due month"""
    with get_db_connection() as conn:
        rows = conn.execute("""
            SELECT id, lease_id, amount, amount_paid, balance, payment_date, original_due_date,
                   status, description, late_fine_amount, days_overdue, updated_at
            FROM unified_payments
            WHERE lease_id = ? AND type = ?
            ORDER BY original_due_date ASC
        """, (lease_id, PAYMENT_TYPE_LATE_FEE)).fetchall()
        return [dict(row) for row in rows]


# ============ RECONCILIATION ============
def generate_missing_payment_records(conn, today: date) -> List[Dict]:
    """
    Consistency pass: insert any pending schedule still missing between an
    active lease's start month and the current month. Idempotent.
    Returns one diagnostic dict per active lease.
    """
    current_month = start_of_month(today)
    results = []
    for lease in get_active_leases(conn):
        start = parse_date(lease['start_date'])
        if not start:
            results.append({
                'id': lease['id'],
                'agreement_number': lease['agreement_number'],
                'status_description': 'Missing start date',
                'inserted': 0,
            })
            continue
        if not lease['rent_amount'] or lease['rent_amount'] <= 0:
            results.append({
                'id': lease['id'],
                'agreement_number': lease['agreement_number'],
                'status_description': 'Invalid rent amount',
                'inserted': 0,
            })
            continue

        existing = get_schedule_due_dates(conn, lease['id'])
        first_month = start_of_month(start)
        inserted = 0
        for i in range(month_span(first_month, current_month)):
            due = add_months(first_month, i)
            if due in existing:
                continue
            created = insert_payment_schedule(conn, PaymentSchedule(
                lease_id=lease['id'],
                due_date=due,
                amount=lease['rent_amount'],
                description=schedule_description(due, is_initial=(i == 0)),
                status=SCHEDULE_STATUS_PENDING,
            ))
            if created:
                inserted += 1

        results.append({
            'id': lease['id'],
            'agreement_number': lease['agreement_number'],
            'status_description': 'Schedules generated' if inserted else 'Up to date',
            'inserted': inserted,
        })

    total = sum(r['inserted'] for r in results)
    if total:
        logger.info(f"🧩 Reconciliation inserted {total} missing payment schedules")
    return results


def find_leases_missing_payments(conn, today: date) -> List[Dict]:
    """
    Diagnostic listing of active leases whose schedules or payments lag the calendar.
    status_description is one of 'Missing start date', 'Missing payment schedules', 'Missing payments'.
    """
    current_month = start_of_month(today)
    issues = []
    for lease in get_active_leases(conn):
        start = parse_date(lease['start_date'])
        schedule_count = conn.execute(
            "SELECT COUNT(*) FROM payment_schedules WHERE lease_id = ?", (lease['id'],)
        ).fetchone()[0]
        paid_months = conn.execute("""
            SELECT COUNT(DISTINCT substr(payment_date, 1, 7)) FROM unified_payments
            WHERE lease_id = ? AND type = ? AND payment_date IS NOT NULL
        """, (lease['id'], PAYMENT_TYPE_INCOME)).fetchone()[0]

        entry = {
            'id': lease['id'],
            'agreement_number': lease['agreement_number'],
            'rent_amount': lease['rent_amount'],
            'start_date': lease['start_date'],
            'schedule_count': schedule_count,
            'payment_count': paid_months,
            'total_months_due': 0,
        }

        if not start:
            entry['status_description'] = 'Missing start date'
            issues.append(entry)
            continue

        months_due = month_span(start_of_month(start), current_month) if start <= today else 0
        entry['total_months_due'] = months_due
        scheduled = len([d for d in get_schedule_due_dates(conn, lease['id']) if d <= current_month])

        if scheduled < months_due:
            entry['status_description'] = 'Missing payment schedules'
            issues.append(entry)
        elif paid_months < months_due:
            entry['status_description'] = 'Missing payments'
            issues.append(entry)
    return issues


# ============ RUN LOCK ============
def acquire_run_lock(name: str, owner: str, ttl_seconds: int) -> bool:
    """
    Take the named advisory lock. A lock older than ttl_seconds is treated as
    abandoned and replaced. Returns False if another owner holds it.
    """
    now = datetime.now(timezone.utc)
    cutoff = (now - timedelta(seconds=ttl_seconds)).isoformat()
    with get_db_connection(immediate=True) as conn:
        stale = conn.execute(
            "DELETE FROM engine_locks WHERE name = ? AND acquired_at < ?", (name, cutoff)
        )
        if stale.rowcount:
            logger.warning(f"⚠️ Replaced stale engine lock '{name}'")
        cursor = conn.execute("""
            INSERT INTO engine_locks (name, owner, acquired_at) VALUES (?, ?, ?)
            ON CONFLICT (name) DO NOTHING
        """, (name, owner, now.isoformat()))
        return cursor.rowcount > 0


def refresh_run_lock(name: str, owner: str) -> bool:
    """
    Heartbeat: move acquired_at to now so a long run is not taken for abandoned.
    Returns False if the lock is no longer held by owner.
    """
    with get_db_connection(immediate=True) as conn:
        cursor = conn.execute(
            "UPDATE engine_locks SET acquired_at = ? WHERE name = ? AND owner = ?",
            (datetime.now(timezone.utc).isoformat(), name, owner),
        )
        return cursor.rowcount > 0


def release_run_lock(name: str, owner: str):
    with get_db_connection(immediate=True) as conn:
        conn.execute("DELETE FROM engine_locks WHERE name = ? AND owner = ?", (name, owner))

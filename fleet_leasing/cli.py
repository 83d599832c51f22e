"""
Command line entry point for the recurring trigger

    fleet-leasing init-db
    fleet-leasing run [--lease-id ID] [--historical-only] [--date YYYY-MM-DD] [--workers N]
    fleet-leasing check-missing [--date YYYY-MM-DD]
    fleet-leasing record-payment --lease-id ID --amount N [--date YYYY-MM-DD] [--method cash]
"""

import argparse
import json
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from fleet_leasing import database
from fleet_leasing.app import setup_logging
from fleet_leasing.config import config, config_as_dict
from fleet_leasing.rent_schedule.core.errors import RunInProgressError
from fleet_leasing.rent_schedule.core.processor import RentScheduleEngine
from fleet_leasing.rent_schedule.utils.date_utils import parse_date

logger = logging.getLogger(__name__)


def _run_date(value):
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)")
    return parsed


def build_parser():
    parser = argparse.ArgumentParser(prog='fleet-leasing', description="Rent schedule and late-fee accrual engine")
    parser.add_argument('--env', default='default', choices=sorted(config), help='Configuration to load')
    parser.add_argument('--database', help='Path to the sqlite database (overrides config)')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('init-db', help='Create the database tables')

    run = sub.add_parser('run', help='Run the rent schedule engine once')
    run.add_argument('--lease-id', help='Only process this agreement')
    run.add_argument('--historical-only', action='store_true', help='Skip current-month accrual')
    run.add_argument('--date', type=_run_date, default=None, help='Reference date (default: today)')
    run.add_argument('--workers', type=int, default=None, help='Worker threads')

    check = sub.add_parser('check-missing', help='List agreements with missing schedules or payments')
    check.add_argument('--date', type=_run_date, default=None, help='Reference date (default: today)')

    payment = sub.add_parser('record-payment', help='Record a rent payment received for an agreement')
    payment.add_argument('--lease-id', required=True, help='Agreement the payment belongs to')
    payment.add_argument('--amount', type=Decimal, required=True, help='Amount received')
    payment.add_argument('--date', type=_run_date, default=None, help='Payment date (default: today)')
    payment.add_argument('--method', default='cash', help='Payment method')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = config_as_dict(config[args.env])
    if args.database:
        settings['DATABASE_PATH'] = Path(args.database)

    setup_logging(Path(settings['LOG_DIR']))
    database.DATABASE_PATH = str(settings['DATABASE_PATH'])
    database.init_database()

    if args.command == 'init-db':
        print(f"Database ready at {database.DATABASE_PATH}")
        return 0

    if args.command == 'check-missing':
        with database.get_db_connection() as conn:
            issues = database.find_leases_missing_payments(conn, args.date or date.today())
        print(json.dumps(issues, indent=2, default=str))
        return 0

    if args.command == 'record-payment':
        payment_id = database.record_income_payment(args.lease_id, args.amount, args.date or date.today(),
                                                    payment_method=args.method)
        logger.info(f"💰 Recorded payment {payment_id} of {args.amount} for lease {args.lease_id}")
        print(json.dumps({'success': True, 'payment_id': payment_id}))
        return 0

    overrides = {}
    if args.workers is not None:
        overrides['workers'] = args.workers
    engine = RentScheduleEngine.from_config(settings, **overrides)
    try:
        summary = engine.run(args.date or date.today(), lease_id=args.lease_id,
                             historical_only=args.historical_only)
    except RunInProgressError as e:
        logger.warning(f"🔒 {e}")
        print(json.dumps({'success': False, 'error': str(e)}))
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.success else 1


if __name__ == '__main__':
    sys.exit(main())

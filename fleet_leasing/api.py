"""
API Routes for rent schedules and late fees
Admin trigger for the engine plus read endpoints used by reporting screens
"""

from flask import Blueprint, request, jsonify, current_app
from datetime import date
import logging

from . import database
from .auth import require_admin_token
from .rent_schedule.core.errors import RunInProgressError
from .rent_schedule.core.processor import RentScheduleEngine
from .rent_schedule.utils.date_utils import parse_date

logger = logging.getLogger(__name__)

# Create API blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')


def _as_bool(value) -> bool:
    return str(value).lower() in ['yes', 'on', 'true', '1']


@api_bp.route('/rent-schedules/process', methods=['POST'])
@require_admin_token
def process_rent_schedules():
    """
    Run the rent schedule engine on demand
    Optional body: {"agreement_id": "...", "process_historical": true, "run_date": "YYYY-MM-DD"}
    """
    data = request.get_json(silent=True) or {}
    agreement_id = data.get('agreement_id') or data.get('agreementId')
    historical_only = _as_bool(data.get('process_historical', data.get('processHistorical', False)))

    run_date = date.today()
    if data.get('run_date'):
        run_date = parse_date(data.get('run_date'))
        if run_date is None:
            return jsonify({'success': False, 'error': f"Invalid run_date: {data.get('run_date')}"}), 400

    logger.info(f"▶️ POST /api/rent-schedules/process - agreement={agreement_id or 'all'}, "
                f"historical_only={historical_only}, run_date={run_date}")

    try:
        engine = RentScheduleEngine.from_config(current_app.config)
        summary = engine.run(run_date, lease_id=agreement_id, historical_only=historical_only)
    except RunInProgressError as e:
        return jsonify({'success': False, 'error': str(e)}), 409
    except Exception as e:
        logger.error(f"Error running rent schedule engine: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    status = 200 if summary.success else 500
    return jsonify(summary.to_dict()), status


@api_bp.route('/agreements/<agreement_id>/payment-schedules', methods=['GET'])
def get_payment_schedules(agreement_id):
    """Payment schedules for an agreement, oldest first"""
    try:
        schedules = database.get_payment_schedules(agreement_id)
        return jsonify({'success': True, 'schedules': schedules})
    except Exception as e:
        logger.error(f"Error fetching payment schedules: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@api_bp.route('/agreements/<agreement_id>/late-fees', methods=['GET'])
def get_late_fees(agreement_id):
    """Late-fee rows for an agreement"""
    try:
        late_fees = database.get_late_fees(agreement_id)
        return jsonify({'success': True, 'late_fees': late_fees})
    except Exception as e:
        logger.error(f"Error fetching late fees: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@api_bp.route('/payments/missing', methods=['GET'])
def get_missing_payments():
    """Active agreements whose schedules or payments lag the calendar"""
    as_of = parse_date(request.args.get('date')) or date.today()
    try:
        with database.get_db_connection() as conn:
            issues = database.find_leases_missing_payments(conn, as_of)
        return jsonify({'success': True, 'agreements': issues})
    except Exception as e:
        logger.error(f"Error checking missing payments: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

"""
Authentication Utilities
Guards the on-demand engine trigger
"""

from functools import wraps
from flask import current_app, jsonify, request
import hmac
import logging

logger = logging.getLogger(__name__)


def require_admin_token(f):
    """
    Decorator to require the admin token
    Expects header: X-Admin-Token: <ADMIN_TOKEN>
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('ADMIN_TOKEN')
        supplied = request.headers.get('X-Admin-Token', '')

        if not expected:
            logger.warning("❌ Admin endpoint called but no ADMIN_TOKEN is configured")
            return jsonify({'success': False, 'error': 'Admin access not configured'}), 403

        if not hmac.compare_digest(supplied, expected):
            logger.warning(f"❌ Admin access denied from {request.remote_addr}")
            return jsonify({'success': False, 'error': 'Admin access required'}), 403

        return f(*args, **kwargs)
    return decorated_function

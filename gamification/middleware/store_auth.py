"""
Store identification middleware.

Authentication itself happens upstream (gateway or host application);
these decorators only read the store the request acts for, and guard the
admin catalog endpoints with a shared token.
"""
import hmac
import logging
from functools import wraps
from typing import Optional

from flask import request, g, current_app

from ..utils.errors import unauthorized, error_response, ErrorCode

logger = logging.getLogger(__name__)


def get_store_id_from_request() -> Optional[int]:
    """
    Get the store id from the request.

    Priority:
    1. X-Store-Id header
    2. store_id query parameter

    Returns:
        Store id or None if missing or not a positive integer
    """
    raw = request.headers.get('X-Store-Id') or request.args.get('store_id')
    if not raw:
        return None

    try:
        store_id = int(raw)
    except (TypeError, ValueError):
        return None
    return store_id if store_id > 0 else None


def require_store(f):
    """
    Decorator requiring a store id on the request.

    Sets g.store_id.

    Usage:
        @require_store
        def my_endpoint():
            store_id = g.store_id
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store_id = get_store_id_from_request()
        if store_id is None:
            return unauthorized('Missing or invalid X-Store-Id header')

        g.store_id = store_id
        return f(*args, **kwargs)

    return decorated_function


def require_admin_token(f):
    """
    Decorator guarding catalog administration.

    When ADMIN_API_TOKEN is configured the X-Admin-Token header must match.
    Without a token, admin endpoints are open outside production and
    closed in production.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('ADMIN_API_TOKEN')

        if not expected:
            if current_app.config.get('ENV_NAME') == 'production':
                logger.error('ADMIN_API_TOKEN is not configured, rejecting admin request')
                return error_response('Admin API is not configured', ErrorCode.ADMIN_REQUIRED, 403, log_error=False)
            return f(*args, **kwargs)

        provided = request.headers.get('X-Admin-Token', '')
        if not hmac.compare_digest(provided.encode(), expected.encode()):
            return error_response('Invalid admin token', ErrorCode.ADMIN_REQUIRED, 403, log_error=False)

        return f(*args, **kwargs)

    return decorated_function

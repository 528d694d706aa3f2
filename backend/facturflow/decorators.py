# Overview: Request decorators for API routes; bearer-token authentication and cron secret check.

import hmac
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets on flask.g:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext (user + session row)

    Returns 401 when the header is missing, or when the token is invalid,
    expired, revoked, or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_cron_secret(f):
    """Scheduled job endpoints: Authorization must be `Bearer <CRON_SECRET>`."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        token = _bearer_token()
        if not secret or not token or not hmac.compare_digest(token, secret):
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function

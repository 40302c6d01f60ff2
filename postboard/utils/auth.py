"""
Admin authentication for moderation routes.

Provides:
- @require_admin: checks the X-Admin-Password header against ADMIN_PASS_HASH
- verify_admin_password: the underlying hash check

Every attempt (good or bad) counts against the "auth" limiter for the
caller's address, so the password cannot be brute-forced.
"""

from __future__ import annotations
from functools import wraps

from flask import current_app, jsonify, request
from flask_limiter.util import get_remote_address
from werkzeug.security import check_password_hash

from postboard.extensions import get_guard

ADMIN_PASSWORD_HEADER = "X-Admin-Password"


def verify_admin_password(password: str | None) -> bool:
    """True if password matches the configured hash. No hash configured means no admin."""
    pass_hash = current_app.config.get("ADMIN_PASS_HASH", "")
    if not pass_hash or not password:
        return False
    return check_password_hash(pass_hash, password)


def require_admin(f):
    """
    Decorator to require the admin password for a route.

    Usage:
        @admin_bp.route("/bans", methods=["POST"])
        @require_admin
        def create_ban():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        get_guard().enforce_rate("auth", get_remote_address())

        if not verify_admin_password(request.headers.get(ADMIN_PASSWORD_HEADER)):
            current_app.logger.warning(f"Rejected admin request from {get_remote_address()}")
            return jsonify({"success": False, "error": "unauthorized"}), 401

        return f(*args, **kwargs)

    return decorated_function

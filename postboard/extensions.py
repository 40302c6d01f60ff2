"""
Defines application-wide extensions. Keeps creation/import separate from
initialization to avoid circular imports. Provides Flask-Limiter (outer per-IP
throttle) and access to the per-app Guard.
"""

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Created here; initialized with app in create_app()
limiter = Limiter(key_func=get_remote_address)

GUARD_EXTENSION = "guard"


def get_guard():
    """Return the Guard built for the current app."""
    return current_app.extensions[GUARD_EXTENSION]

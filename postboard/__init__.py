"""
Application factory and global configuration.

Creates the Flask app, validates production settings, configures the outer
per-IP limiter, builds the store and the Guard (rate limiters, bans, caches,
quotas, profanity filter) for this app instance, and registers blueprints,
error handlers and CLI commands. Keeps startup/config concerns together and
avoids domain logic here.
"""

from __future__ import annotations
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, Response

from .cli import register_commands
from .extensions import GUARD_EXTENSION, limiter
from .routes.admin import admin_bp
from .routes.api import api_bp
from .services.guard import Guard
from .services.store import create_store
from .utils.errors import register_error_handlers


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical settings in production environments.

    Raises RuntimeError if production requirements are not met so the app
    never starts with an insecure configuration.

    Checks:
    - SECRET_KEY must be set and strong (>= 32 characters)
    - DEBUG must be False
    - ADMIN_PASS_HASH must be set (otherwise bans can only be managed via CLI)
    - STORE_BACKEND must not be "memory" (bans and API keys would vanish on restart)
    """
    is_production = "ProdConfig" in cfg_path
    if not is_production or app.config.get("TESTING", False):
        return

    errors = []

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(
            f"SECRET_KEY is too weak ({len(secret_key)} chars). "
            "Must be at least 32 characters for production security."
        )

    if app.config.get("DEBUG", False):
        errors.append("DEBUG must be False in production.")

    if not app.config.get("ADMIN_PASS_HASH"):
        errors.append("ADMIN_PASS_HASH is not set. Generate one with: flask generate-admin-hash")

    if app.config.get("STORE_BACKEND", "").lower() == "memory":
        errors.append("STORE_BACKEND=memory is not allowed in production.")

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION SECURITY VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production security validation passed")


def create_app(overrides: Optional[Mapping[str, Any]] = None, store=None, clock=None) -> Flask:
    """
    Build an app instance.

    ``overrides`` are applied on top of the selected config object; ``store``
    and ``clock`` let tests inject a prepared store and a fake clock.
    """
    load_dotenv()

    app = Flask(__name__)

    # Allow APP_CONFIG to override (e.g., postboard.config.DevConfig)
    cfg_path = os.getenv("APP_CONFIG", "postboard.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")
    if overrides:
        app.config.update(overrides)

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)
    # The Limiter is shared by every app in the process; follow this app's config
    limiter.enabled = bool(app.config.get("RATELIMIT_ENABLED", True))

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    if store is None:
        store = create_store(app)
    guard_kwargs = {"clock": clock} if clock is not None else {}
    app.extensions[GUARD_EXTENSION] = Guard.from_config(app.config, store, **guard_kwargs)

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Cache-Control"] = "no-store"
        return resp

    register_error_handlers(app)
    register_commands(app)

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(admin_bp)

    return app

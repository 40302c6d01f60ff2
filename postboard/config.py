"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=postboard.config.DevConfig      # local dev
  APP_CONFIG=postboard.config.ProdConfig     # production (default if unset)
  APP_CONFIG=postboard.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- RATELIMIT_* keys configure the outer Flask-Limiter per-IP throttle.
  RATE_LIMIT_CLASSES configures the per-actor limiters in the guard layer.
"""

from __future__ import annotations
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


class BaseConfig:
    # Secrets & basics
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")
    DEBUG = False
    TESTING = False

    # Admin password hash (generate with `flask generate-admin-hash`)
    ADMIN_PASS_HASH = os.getenv("ADMIN_PASS_HASH", "")

    # Storage: "memory" or "supabase"
    STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase")
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Flask-Limiter v3
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "300 per minute; 10000 per day")

    # Per-actor limiter classes (window in seconds)
    RATE_LIMIT_CLASSES = {
        "general": {"window": 60, "cap": 120},
        "write": {"window": 60, "cap": 20},
        "auth": {"window": 60, "cap": 10},
    }

    # Caches
    FEED_CACHE_TTL = 5
    AUTHOR_CACHE_TTL = 5
    AUTHOR_CACHE_CAPACITY = 100

    # API keys
    QUOTA_DAILY_LIMIT = int(os.getenv("QUOTA_DAILY_LIMIT", "1000"))

    # Moderation
    PROFANITY_SCATTERED_MATCH = _flag("PROFANITY_SCATTERED_MATCH", "true")

    # Content limits
    MAX_NICKNAME_LEN = 15
    MAX_POST_LEN = 200
    MAX_COMMENT_LEN = 100
    FEED_PAGE_SIZE = 20

    # Misc
    MAX_CONTENT_LENGTH = 64 * 1024  # JSON bodies only


class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass


class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    ENV = "development"
    DEBUG = True
    STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")
    # Relaxed write limits for manual testing
    RATE_LIMIT_CLASSES = {
        "general": {"window": 60, "cap": 600},
        "write": {"window": 60, "cap": 100},
        "auth": {"window": 60, "cap": 50},
    }


class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    STORE_BACKEND = "memory"
    # The outer per-IP limiter is off; guard limiters stay on and are tested directly
    RATELIMIT_ENABLED = False
    ADMIN_PASS_HASH = ""
    PROFANITY_SCATTERED_MATCH = True

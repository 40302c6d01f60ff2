# tests/conftest.py
"""
Test configuration and shared fixtures.

Provides a fake clock, an in-memory store, and a Flask app/test client wired
to both so time-based behaviour (windows, TTLs, ban expiry, quota resets) can
be driven deterministically.
"""

import os
import sys
import pytest
from werkzeug.security import generate_password_hash

# Add the project root to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

ADMIN_PASSWORD = "correct horse battery staple"


class FakeClock:
    """Callable clock returning epoch seconds; advanced manually."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    from postboard.services.store import MemoryStore
    return MemoryStore(clock)


@pytest.fixture
def app_overrides():
    """Per-test config overrides; override this fixture in a test module to change limits."""
    return {}


@pytest.fixture
def app(store, clock, app_overrides):
    """Create and configure a Flask app instance for testing."""
    os.environ["APP_CONFIG"] = "postboard.config.TestConfig"

    from postboard import create_app

    overrides = {
        "TESTING": True,
        "RATELIMIT_ENABLED": False,
        "ADMIN_PASS_HASH": generate_password_hash(ADMIN_PASSWORD),
    }
    overrides.update(app_overrides)

    app = create_app(overrides, store=store, clock=clock)
    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask app."""
    return app.test_cli_runner()


@pytest.fixture
def guard(app):
    return app.extensions["guard"]


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}

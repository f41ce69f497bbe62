"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``webguard.core.config``
so the settings singleton is built from test values.
"""

import os

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("DATABASE_URL", "https://db.example.test")
os.environ.setdefault("DATABASE_ANON_KEY", "anon-test-key")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_SECURITY_THROTTLE_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_throttle():
    """Start every test with an empty process-wide throttle registry."""
    from webguard.core.rate_limit import clear_all

    clear_all()
    yield
    clear_all()

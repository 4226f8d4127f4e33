"""
Pytest configuration and shared fixtures for support SDK tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_transports = importlib.import_module("fixtures.transports")

FakeTransportFactory = _transports.FakeTransportFactory
make_exchange = _transports.make_exchange
make_failure = _transports.make_failure

from support_sdk.config import HttpConfig, set_default_config
from support_sdk.http import HttpClient


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(autouse=True)
def _isolated_default_config():
    """Keep the process-wide default config from leaking between tests."""
    set_default_config(None)
    yield
    set_default_config(None)


@pytest.fixture
def transport_factory():
    """Provide a scripted transport factory."""
    return FakeTransportFactory()


@pytest.fixture
def client(transport_factory):
    """Provide an HttpClient over the scripted transport with default config."""
    http = HttpClient(HttpConfig(), transport_factory=transport_factory)
    yield http
    http.close()


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )

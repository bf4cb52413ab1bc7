"""
Test Configuration and Fixtures

Shared fixtures for the unit and end-to-end suites. Every collaborator the
engine talks to (generative responder, knowledge provider, clock) is faked.
"""

import os

import pytest

from pitwall.config import Settings
from pitwall.features import FeatureExtractor

from tests.support.clock import FakeClock
from tests.support.fakes import FakeKnowledgeProvider, FakeResponder
from tests.support.settings import make_settings

os.environ.setdefault("LOG_LEVEL", "WARNING")


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "e2e: End-to-end tests through the query graph")
    config.addinivalue_line("markers", "slow: Slow tests (>1s)")


def pytest_collection_modifyitems(config, items):
    """
    Auto-assign tier markers so we can run:
    - pytest -m unit
    - pytest -m e2e

    Convention:
    - tests/e2e/** => e2e
    - everything else => unit
    """
    for item in items:
        path = str(getattr(item, "fspath", ""))
        if item.get_closest_marker("e2e") or item.get_closest_marker("unit"):
            continue
        if "/tests/e2e/" in path or "\\tests\\e2e\\" in path:
            item.add_marker(pytest.mark.e2e)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock.fixed(year=2026, month=3, day=1)


@pytest.fixture
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


@pytest.fixture
def responder() -> FakeResponder:
    return FakeResponder()


@pytest.fixture
def knowledge() -> FakeKnowledgeProvider:
    return FakeKnowledgeProvider()

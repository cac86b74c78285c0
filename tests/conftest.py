"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import EngineTuning  # noqa: E402
from zenjin.content import InMemoryFactRepository, StaticContentProvider  # noqa: E402
from zenjin.engine import SequencingFacade  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Settable clock injected into engine components."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def tuning():
    """Default engine constants."""
    return EngineTuning()


@pytest.fixture
def clock():
    """Clock frozen until a test advances it."""
    return FakeClock()


@pytest.fixture
def facts():
    """Fact repository with the built-in arithmetic curriculum."""
    return InMemoryFactRepository.default()


@pytest.fixture
def content():
    """Content provider with the addition, multiplication and division paths."""
    return StaticContentProvider.default()


@pytest.fixture
def facade(content, facts, tuning, clock):
    """Sequencing facade over the built-in curriculum."""
    return SequencingFacade(content=content, facts=facts, tuning=tuning, clock=clock)


@pytest.fixture
def learner(facade):
    """An initialized user id."""
    facade.initialize_user("learner-1")
    return "learner-1"

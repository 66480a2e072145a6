"""
Shared pytest fixtures and configuration for pacer tests.

This module provides:
- Auto-marking of tests by location (unit / integration)
- Logging and settings isolation between tests

Usage:
    Fixtures are auto-discovered by pytest. Work-function doubles live in
    ``tests._support``.
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Ensure pacer package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from pacer.core.settings import get_settings  # noqa: E402
from tests._support import Gate, Recorder  # noqa: E402


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging_and_settings() -> Generator[None, None, None]:
    """Restore structlog defaults and drop cached settings around each test."""
    structlog.reset_defaults()
    get_settings.cache_clear()
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()


# =============================================================================
# Work Function Fixtures
# =============================================================================


@pytest.fixture
def gate() -> Gate:
    """Blocking work function (created inside the test's event loop)."""
    return Gate()


@pytest.fixture
def recorder() -> Recorder:
    """Scheduler callback recorder."""
    return Recorder()

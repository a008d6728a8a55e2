"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the procshell test suite.
"""

import logging
import os
from collections.abc import Generator

import pytest

from procshell import Shell

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (spawn real OS processes)"
    )
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")
    config.addinivalue_line("markers", "posix: Tests that rely on POSIX signals")


def pytest_collection_modifyitems(config, items):
    """
    Add 'unit' marker to unmarked tests and skip POSIX tests elsewhere.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    skip_posix = pytest.mark.skip(reason="requires POSIX signals and /bin/sh")
    for item in items:
        if not any(
            mark.name in ["integration", "slow"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
        if os.name != "posix" and any(
            mark.name == "posix" for mark in item.iter_markers()
        ):
            item.add_marker(skip_posix)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def shell() -> Shell:
    """Builder with inherited environment and streams."""
    return Shell()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """
    Reset root logger state before and after each test.

    The CLI configures the root logger via logging.basicConfig; this keeps
    that from leaking into other tests.
    """
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level

    yield

    logging.root.handlers = original_handlers
    logging.root.setLevel(original_level)

"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from courier.utils.logging import clear_correlation_id
from tests.fixtures.providers import RecordingSleep


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Iterator[None]:
    """Keep correlation IDs from leaking between tests."""
    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Backoff sleep that records delays instead of waiting."""
    return RecordingSleep()


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    """Restore root logger handlers and level after configure_logging runs."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)

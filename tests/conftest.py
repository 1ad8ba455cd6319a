from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from aretry.handlers import ExceptionHandlerManager
from aretry.store import InMemoryStore

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def store() -> InMemoryStore:
    """Create a fresh in-memory store so tests never share state."""
    return InMemoryStore()


@pytest.fixture
def handler_manager() -> ExceptionHandlerManager:
    """Create a handler manager with the default handlers."""
    return ExceptionHandlerManager().register_default_handlers()


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing callbacks.

    This fixture provides a simple Mock object that can be used to test
    callback functionality across different test scenarios.

    Returns:
        A Mock object that can be used as a callback function.

    Example:
        >>> def test_callback(mock_callback):
        ...     executor.with_progress(mock_callback)
        ...     mock_callback.assert_called_once()
    """
    return Mock()

r"""Unit tests for LinearBackoffStrategy."""

from __future__ import annotations

import pytest

from aretry.strategies import LinearBackoffStrategy


def test_linear_backoff_basic() -> None:
    strategy = LinearBackoffStrategy(base_delay=1.0, increment=1.0)
    assert [strategy.delay(attempt) for attempt in range(4)] == [1.0, 2.0, 3.0, 4.0]


def test_linear_backoff_custom_increment() -> None:
    strategy = LinearBackoffStrategy(base_delay=2.0, increment=0.5)
    assert strategy.delay(0) == 2.0
    assert strategy.delay(4) == 4.0


def test_linear_backoff_with_max_delay() -> None:
    strategy = LinearBackoffStrategy(base_delay=1.0, increment=2.0, max_delay=4.0)
    assert strategy.delay(1) == 3.0
    assert strategy.delay(2) == 4.0
    assert strategy.delay(100) == 4.0


def test_linear_backoff_negative_increment_clamps_at_zero() -> None:
    strategy = LinearBackoffStrategy(base_delay=1.0, increment=-0.5)
    assert strategy.delay(1) == 0.5
    assert strategy.delay(5) == 0.0


def test_linear_backoff_invalid_base_delay() -> None:
    with pytest.raises(ValueError, match=r"base_delay must be non-negative"):
        LinearBackoffStrategy(base_delay=-0.1)

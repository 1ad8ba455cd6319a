r"""Unit tests for ExponentialBackoffStrategy."""

from __future__ import annotations

import sys
from unittest.mock import patch

import pytest

from aretry.strategies import ExponentialBackoffStrategy


def test_exponential_backoff_basic() -> None:
    """Test basic exponential backoff calculation."""
    strategy = ExponentialBackoffStrategy(base_delay=0.3)
    assert strategy.delay(0) == 0.3  # 0.3 * 2^0
    assert strategy.delay(1) == 0.6  # 0.3 * 2^1
    assert strategy.delay(2) == 1.2  # 0.3 * 2^2
    assert strategy.delay(3) == 2.4  # 0.3 * 2^3


def test_exponential_backoff_default_values() -> None:
    strategy = ExponentialBackoffStrategy()
    assert strategy.base_delay == 1.0
    assert strategy.multiplier == 2.0
    assert strategy.max_delay is None
    assert not strategy.with_jitter
    assert strategy.jitter_percent == 0.2


def test_exponential_backoff_with_max_delay() -> None:
    """Test exponential backoff with max_delay cap."""
    strategy = ExponentialBackoffStrategy(base_delay=1.0, max_delay=5.0)
    assert strategy.delay(0) == 1.0
    assert strategy.delay(1) == 2.0
    assert strategy.delay(2) == 4.0
    assert strategy.delay(3) == 5.0  # Would be 8.0, but capped
    assert strategy.delay(10) == 5.0


def test_exponential_backoff_custom_multiplier() -> None:
    strategy = ExponentialBackoffStrategy(base_delay=1.0, multiplier=3.0)
    assert [strategy.delay(attempt) for attempt in range(4)] == [1.0, 3.0, 9.0, 27.0]


def test_exponential_backoff_is_monotonic_without_jitter() -> None:
    strategy = ExponentialBackoffStrategy(base_delay=0.1, max_delay=30.0)
    delays = [strategy.delay(attempt) for attempt in range(50)]
    assert delays == sorted(delays)
    assert max(delays) == 30.0


def test_exponential_backoff_zero_base_delay() -> None:
    strategy = ExponentialBackoffStrategy(base_delay=0.0)
    assert strategy.delay(0) == 0.0
    assert strategy.delay(5) == 0.0


def test_exponential_backoff_huge_attempt_does_not_overflow() -> None:
    assert ExponentialBackoffStrategy(base_delay=1.0).delay(5000) == sys.float_info.max
    assert ExponentialBackoffStrategy(base_delay=1.0, max_delay=60.0).delay(5000) == 60.0


def test_exponential_backoff_with_jitter_stays_in_range() -> None:
    strategy = ExponentialBackoffStrategy(base_delay=1.0, with_jitter=True, jitter_percent=0.2)
    for _ in range(50):
        assert 3.2 <= strategy.delay(2) <= 4.8


def test_exponential_backoff_jitter_uses_random() -> None:
    strategy = ExponentialBackoffStrategy(base_delay=1.0, with_jitter=True, jitter_percent=0.5)
    with patch("aretry.utils.jitter.random.uniform", return_value=1.0):
        assert strategy.delay(1) == 3.0


def test_exponential_backoff_jitter_then_cap() -> None:
    strategy = ExponentialBackoffStrategy(
        base_delay=4.0, max_delay=4.0, with_jitter=True, jitter_percent=0.5
    )
    with patch("aretry.utils.jitter.random.uniform", return_value=1.0):
        assert strategy.delay(0) == 4.0


def test_exponential_backoff_invalid_base_delay() -> None:
    with pytest.raises(ValueError, match=r"base_delay must be non-negative"):
        ExponentialBackoffStrategy(base_delay=-1.0)


@pytest.mark.parametrize("max_delay", [0, -5.0])
def test_exponential_backoff_invalid_max_delay(max_delay: float) -> None:
    with pytest.raises(ValueError, match=r"max_delay must be positive"):
        ExponentialBackoffStrategy(base_delay=1.0, max_delay=max_delay)


@pytest.mark.parametrize("multiplier", [0, -2.0])
def test_exponential_backoff_invalid_multiplier(multiplier: float) -> None:
    with pytest.raises(ValueError, match=r"multiplier must be positive"):
        ExponentialBackoffStrategy(multiplier=multiplier)


def test_exponential_backoff_invalid_jitter_percent() -> None:
    with pytest.raises(ValueError, match=r"jitter_percent must be in \[0, 1\]"):
        ExponentialBackoffStrategy(jitter_percent=1.5)

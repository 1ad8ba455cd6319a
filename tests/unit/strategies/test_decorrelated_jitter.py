r"""Unit tests for DecorrelatedJitterStrategy."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from aretry.strategies import DecorrelatedJitterStrategy


def test_decorrelated_jitter_bounds() -> None:
    strategy = DecorrelatedJitterStrategy(base_delay=1.0)
    assert strategy.bounds(0) == (1.0, 3.0)
    assert strategy.bounds(2) == (1.0, 12.0)


def test_decorrelated_jitter_bounds_capped() -> None:
    strategy = DecorrelatedJitterStrategy(base_delay=1.0, max_delay=5.0)
    assert strategy.bounds(10) == (1.0, 5.0)
    assert strategy.bounds(10_000) == (1.0, 5.0)


def test_decorrelated_jitter_delay_in_window() -> None:
    strategy = DecorrelatedJitterStrategy(base_delay=0.5, max_delay=4.0)
    for attempt in range(10):
        low, high = strategy.bounds(attempt)
        assert low <= strategy.delay(attempt) <= high


def test_decorrelated_jitter_draws_uniformly() -> None:
    strategy = DecorrelatedJitterStrategy(base_delay=1.0, min_factor=0.5, max_factor=2.0)
    with patch("aretry.strategies.decorrelated_jitter.random.uniform", return_value=1.7) as mock:
        assert strategy.delay(1) == 1.7
    mock.assert_called_once_with(0.5, 4.0)


def test_decorrelated_jitter_zero_base_delay() -> None:
    assert DecorrelatedJitterStrategy(base_delay=0.0).delay(3) == 0.0


def test_decorrelated_jitter_negative_min_factor() -> None:
    with pytest.raises(ValueError, match=r"min_factor must be non-negative"):
        DecorrelatedJitterStrategy(min_factor=-1.0)


def test_decorrelated_jitter_min_factor_above_max_factor() -> None:
    with pytest.raises(ValueError, match=r"min_factor must be <= max_factor"):
        DecorrelatedJitterStrategy(min_factor=4.0, max_factor=3.0)


def test_decorrelated_jitter_max_delay_below_lower_bound() -> None:
    with pytest.raises(ValueError, match=r"max_delay must be >= base_delay \* min_factor"):
        DecorrelatedJitterStrategy(base_delay=2.0, max_delay=1.0)

r"""Unit tests for retry_call and the retryable decorator."""

from __future__ import annotations

from unittest.mock import Mock, call

import pytest

from aretry import RetryConfig, retry_call, retryable
from aretry.exceptions import StrategyResolutionError
from aretry.strategies import FixedDelayStrategy

################################
#     Tests for retry_call     #
################################


def test_retry_call_success(mock_sleep: Mock) -> None:
    result = retry_call(lambda: 42)
    assert result.value() == 42
    mock_sleep.assert_not_called()


def test_retry_call_retries(mock_sleep: Mock) -> None:
    operation = Mock(side_effect=[ConnectionError("connection reset"), 42])
    result = retry_call(operation, max_retries=2, delay=0.5, strategy="fixed-delay")
    assert result.value() == 42
    assert len(result.exception_history) == 1
    mock_sleep.assert_called_once_with(0.5)


def test_retry_call_config_overrides(mock_sleep: Mock) -> None:
    operation = Mock(side_effect=TimeoutError("slow"))
    config = RetryConfig(max_retries=5, delay=0.0)
    result = retry_call(operation, config=config, max_retries=1)
    assert result.failed
    assert operation.call_count == 2
    assert mock_sleep.call_count == 1
    assert config.max_retries == 5


def test_retry_call_none_overrides_ignored(mock_sleep: Mock) -> None:  # noqa: ARG001
    operation = Mock(side_effect=TimeoutError("slow"))
    retry_call(operation, config=RetryConfig(max_retries=2, delay=0.0), max_retries=None)
    assert operation.call_count == 3


def test_retry_call_strategy_instance(mock_sleep: Mock) -> None:
    retry_call(
        Mock(side_effect=[TimeoutError(), "ok"]), strategy=FixedDelayStrategy(1.5), max_retries=1
    )
    mock_sleep.assert_called_once_with(1.5)


def test_retry_call_strategy_alias_with_options(mock_sleep: Mock) -> None:
    retry_call(
        Mock(side_effect=TimeoutError()),
        strategy="linear-backoff",
        strategy_options={"base_delay": 1.0},
        max_retries=2,
    )
    assert mock_sleep.call_args_list == [call(1.0), call(2.0)]


def test_retry_call_strategy_options_only(mock_sleep: Mock) -> None:
    retry_call(
        Mock(side_effect=TimeoutError()),
        strategy_options={"base_delay": 0.25, "multiplier": 3.0},
        max_retries=2,
    )
    assert mock_sleep.call_args_list == [call(0.25), call(0.75)]


def test_retry_call_unknown_strategy() -> None:
    with pytest.raises(StrategyResolutionError):
        retry_call(lambda: 1, strategy="does-not-exist")


def test_retry_call_invalid_config() -> None:
    with pytest.raises(ValueError, match=r"max_retries must be >= 0"):
        retry_call(lambda: 1, max_retries=-1)


def test_retry_call_non_retryable(mock_sleep: Mock) -> None:
    operation = Mock(side_effect=ValueError("bad input"))
    result = retry_call(operation, delay=0.0)
    assert isinstance(result.error, ValueError)
    assert operation.call_count == 1
    mock_sleep.assert_not_called()


def test_retry_call_retry_if(mock_sleep: Mock) -> None:  # noqa: ARG001
    operation = Mock(side_effect=[ValueError("bad"), "ok"])
    result = retry_call(operation, delay=0.0, retry_if=lambda error, snapshot: True)
    assert result.value() == "ok"


def test_retry_call_retry_if_wins_over_retry_unless(mock_sleep: Mock) -> None:  # noqa: ARG001
    operation = Mock(side_effect=[ValueError("bad"), "ok"])
    result = retry_call(
        operation,
        delay=0.0,
        retry_if=lambda error, snapshot: True,
        retry_unless=lambda error, snapshot: True,
    )
    assert result.value() == "ok"


def test_retry_call_retry_unless(mock_sleep: Mock) -> None:  # noqa: ARG001
    operation = Mock(side_effect=TimeoutError("slow"))
    result = retry_call(operation, delay=0.0, retry_unless=lambda error, snapshot: True)
    assert result.failed
    assert operation.call_count == 1


def test_retry_call_extras(mock_sleep: Mock) -> None:  # noqa: ARG001
    result = retry_call(
        Mock(side_effect=[KeyError("k"), ValueError("deadlock"), "ok"]),
        delay=0.0,
        extra_patterns=["deadlock"],
        extra_exception_types=[KeyError],
    )
    assert result.value() == "ok"


def test_retry_call_callbacks(mock_sleep: Mock) -> None:  # noqa: ARG001
    on_retry = Mock()
    on_success = Mock()
    on_failure = Mock()
    on_progress = Mock()
    retry_call(
        Mock(side_effect=[TimeoutError("slow"), "ok"]),
        delay=0.0,
        on_retry=on_retry,
        on_success=on_success,
        on_failure=on_failure,
        on_progress=on_progress,
    )
    on_retry.assert_called_once()
    on_success.assert_called_once()
    on_failure.assert_not_called()
    on_progress.assert_called_once()


###############################
#     Tests for retryable     #
###############################


def test_retryable_success(mock_sleep: Mock) -> None:  # noqa: ARG001
    @retryable(max_retries=1, delay=0.0)
    def divide(a: float, b: float) -> float:
        return a / b

    assert divide(6, b=3).value() == 2.0


def test_retryable_retries_with_arguments(mock_sleep: Mock) -> None:  # noqa: ARG001
    func = Mock(side_effect=[TimeoutError(), "ok"])
    decorated = retryable(max_retries=1, delay=0.0)(func)
    assert decorated("a", key="b").value() == "ok"
    assert func.call_args_list == [call("a", key="b"), call("a", key="b")]


def test_retryable_failure() -> None:
    @retryable(max_retries=1, delay=0.0)
    def divide(a: float, b: float) -> float:
        return a / b

    result = divide(1, 0)
    assert result.failed
    assert isinstance(result.error, ZeroDivisionError)


def test_retryable_preserves_metadata() -> None:
    @retryable()
    def fetch_users() -> list:
        """Fetch the users."""
        return []

    assert fetch_users.__name__ == "fetch_users"
    assert fetch_users.__doc__ == "Fetch the users."

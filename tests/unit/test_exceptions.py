from __future__ import annotations

import pytest

from aretry.exceptions import (
    HandlerLoadError,
    MaxRetriesExceededError,
    RetryError,
    StoreError,
    StrategyResolutionError,
)


@pytest.mark.parametrize(
    "cls", [HandlerLoadError, MaxRetriesExceededError, StoreError, StrategyResolutionError]
)
def test_exceptions_inherit_retry_error(cls: type[Exception]) -> None:
    assert issubclass(cls, RetryError)


def test_store_error() -> None:
    error = StoreError("store unreachable", key="circuit:api:state")
    assert str(error) == "store unreachable"
    assert error.key == "circuit:api:state"


def test_store_error_without_key() -> None:
    assert StoreError("boom").key is None


def test_strategy_resolution_error_is_value_error() -> None:
    with pytest.raises(ValueError, match=r"Invalid strategy alias"):
        raise StrategyResolutionError("Invalid strategy alias 'nope'")


def test_handler_load_error_is_import_error() -> None:
    assert issubclass(HandlerLoadError, ImportError)


@pytest.mark.parametrize(("max_retries", "attempts"), [(0, 1), (3, 4)])
def test_max_retries_exceeded_error(max_retries: int, attempts: int) -> None:
    error = MaxRetriesExceededError(max_retries)
    assert error.max_retries == max_retries
    assert str(error) == f"Operation failed after {attempts} attempts"

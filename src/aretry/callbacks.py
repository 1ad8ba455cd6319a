r"""Callback types and data structures for observability.

This module provides the lifecycle signals of the retry executor,
enabling users to hook into the retry lifecycle for logging, metrics
and alerting.

The callback system provides three lifecycle hooks:
- on_retry: Called before each retry (before the delay)
- on_success: Called when the operation succeeds
- on_failure: Called when the executor gives up

Example:
    ```pycon
    >>> from aretry import CallbackConfig, RetryExecutor
    >>> from aretry.callbacks import RetryInfo
    >>> def log_retry(retry_info: RetryInfo):
    ...     print(f"Retry {retry_info.attempt}/{retry_info.max_retries + 1}")
    ...
    >>> executor = RetryExecutor(callbacks=CallbackConfig(on_retry=log_retry))

    ```
"""

from __future__ import annotations

__all__ = [
    "FailureInfo",
    "RetryInfo",
    "SuccessInfo",
    "invoke_on_failure",
    "invoke_on_retry",
    "invoke_on_success",
]

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.retry.context import AttemptRecord


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        operation_id: The identifier of the run.
        attempt: The next attempt number (1-indexed). First retry is
            attempt 2.
        max_retries: Maximum number of retry attempts configured.
        delay: The delay in seconds before this retry.
        error: The exception that triggered the retry.
        context: A snapshot of the retry context.
    """

    operation_id: str
    attempt: int
    max_retries: int
    delay: float
    error: Exception
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class SuccessInfo:
    """Information passed to on_success callback.

    Attributes:
        operation_id: The identifier of the run.
        attempt: The attempt number that succeeded (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        value: The value returned by the operation.
        duration: Duration of the successful attempt in seconds.
        total_time: Total time spent on all attempts including delays
            (seconds).
        context: A snapshot of the retry context.
    """

    operation_id: str
    attempt: int
    max_retries: int
    value: Any
    duration: float
    total_time: float
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        operation_id: The identifier of the run.
        attempt: The final attempt number (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        error: The final exception that caused the failure.
        exception_history: The records of every failed attempt.
        total_time: Total time spent on all attempts including delays
            (seconds).
        context: A snapshot of the retry context.
    """

    operation_id: str
    attempt: int
    max_retries: int
    error: Exception
    exception_history: list[AttemptRecord]
    total_time: float
    context: dict[str, Any] = field(default_factory=dict)


def invoke_on_retry(
    on_retry: Callable[[RetryInfo], None] | None,
    *,
    operation_id: str,
    attempt: int,
    max_retries: int,
    delay: float,
    error: Exception,
    context: dict[str, Any],
) -> None:
    """Invoke on_retry callback if provided.

    Args:
        on_retry: Optional callback to invoke before each retry.
        operation_id: The identifier of the run.
        attempt: The attempt that just failed (0-indexed internally).
            The callback receives the next attempt number as a
            1-indexed value. For example, after the first failed attempt
            (internally attempt=0), the callback receives attempt=2.
        max_retries: Maximum number of retry attempts.
        delay: The delay in seconds before this retry.
        error: The exception that triggered the retry.
        context: A snapshot of the retry context.
    """
    if on_retry is not None:
        on_retry(
            RetryInfo(
                operation_id=operation_id,
                attempt=attempt + 2,  # Next attempt number
                max_retries=max_retries,
                delay=delay,
                error=error,
                context=context,
            )
        )


def invoke_on_success(
    on_success: Callable[[SuccessInfo], None] | None,
    *,
    operation_id: str,
    attempt: int,
    max_retries: int,
    value: Any,
    duration: float,
    total_time: float,
    context: dict[str, Any],
) -> None:
    """Invoke on_success callback if provided.

    Args:
        on_success: Optional callback to invoke when the operation
            succeeds.
        operation_id: The identifier of the run.
        attempt: The attempt number that succeeded (0-indexed
            internally). The callback receives this as a 1-indexed value
            (attempt + 1).
        max_retries: Maximum number of retry attempts.
        value: The value returned by the operation.
        duration: Duration of the successful attempt in seconds.
        total_time: Total time spent including delays.
        context: A snapshot of the retry context.
    """
    if on_success is not None:
        on_success(
            SuccessInfo(
                operation_id=operation_id,
                attempt=attempt + 1,
                max_retries=max_retries,
                value=value,
                duration=duration,
                total_time=total_time,
                context=context,
            )
        )


def invoke_on_failure(
    on_failure: Callable[[FailureInfo], None] | None,
    *,
    operation_id: str,
    attempt: int,
    max_retries: int,
    error: Exception,
    exception_history: list[AttemptRecord],
    total_time: float,
    context: dict[str, Any],
) -> None:
    """Invoke on_failure callback if provided.

    Args:
        on_failure: Optional callback to invoke when the executor gives
            up.
        operation_id: The identifier of the run.
        attempt: The final attempt number (0-indexed internally). The
            callback receives this as a 1-indexed value (attempt + 1).
        max_retries: Maximum number of retry attempts.
        error: The final exception.
        exception_history: The records of every failed attempt.
        total_time: Total time spent including delays.
        context: A snapshot of the retry context.
    """
    if on_failure is not None:
        on_failure(
            FailureInfo(
                operation_id=operation_id,
                attempt=attempt + 1,
                max_retries=max_retries,
                error=error,
                exception_history=exception_history,
                total_time=total_time,
                context=context,
            )
        )

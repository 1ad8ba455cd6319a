r"""Contains convenience functions to run operations with automatic retry
logic."""

from __future__ import annotations

__all__ = ["retry_call", "retryable"]

import functools
import logging
from typing import TYPE_CHECKING, Any

from aretry.config import CallbackConfig, RetryConfig
from aretry.retry.executor import RetryExecutor

if TYPE_CHECKING:
    import re
    from collections.abc import Callable, Iterable

    from aretry.handlers.manager import ExceptionHandlerManager
    from aretry.retry.result import RetryResult
    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)


def retry_call(
    operation: Callable[[], Any],
    *,
    config: RetryConfig | None = None,
    strategy: BaseRetryStrategy | str | None = None,
    strategy_options: dict[str, Any] | None = None,
    retry_if: Callable[[Exception, dict[str, Any]], bool] | None = None,
    retry_unless: Callable[[Exception, dict[str, Any]], bool] | None = None,
    handler_manager: ExceptionHandlerManager | None = None,
    on_retry: Callable[..., None] | None = None,
    on_success: Callable[..., None] | None = None,
    on_failure: Callable[..., None] | None = None,
    on_progress: Callable[[str], None] | None = None,
    extra_patterns: Iterable[str | re.Pattern[str]] = (),
    extra_exception_types: Iterable[type[BaseException]] = (),
    **config_overrides: Any,
) -> RetryResult:
    """Run an operation once with automatic retry logic.

    A ``RetryExecutor`` is built for the call and discarded afterwards.

    Args:
        operation: The zero-argument operation.
        config: Base configuration. Defaults to ``RetryConfig()``.
        strategy: A strategy instance, alias or dotted path. Defaults to
            ``config.strategy``.
        strategy_options: Keyword arguments of the strategy when
            ``strategy`` is an identifier.
        retry_if: Optional predicate receiving ``(error, snapshot)``;
            retry only when it returns true.
        retry_unless: Optional predicate receiving ``(error, snapshot)``;
            retry only when it returns false. Ignored when ``retry_if``
            is given.
        handler_manager: Optional exception handler registry.
        on_retry: Optional callback receiving ``RetryInfo``.
        on_success: Optional callback receiving ``SuccessInfo``.
        on_failure: Optional callback receiving ``FailureInfo``.
        on_progress: Optional callback receiving the progress messages.
        extra_patterns: Message patterns classified retryable.
        extra_exception_types: Exception types classified retryable.
        **config_overrides: ``RetryConfig`` fields overriding ``config``
            (e.g. ``max_retries``, ``delay``, ``total_timeout``). ``None``
            values are ignored.

    Returns:
        The result of the run.

    Raises:
        ValueError: If the configuration is invalid.
        StrategyResolutionError: If the strategy cannot be resolved.

    Example:
        ```pycon
        >>> from unittest.mock import Mock
        >>> from aretry import retry_call
        >>> operation = Mock(side_effect=[ConnectionError("connection reset"), 42])
        >>> retry_call(operation, max_retries=2, delay=0.0).value()
        42

        ```
    """
    config = (config if config is not None else RetryConfig()).merge(**config_overrides)
    if isinstance(strategy, str):
        config = config.merge(strategy=strategy, strategy_options=strategy_options)
        strategy = None
    elif strategy is None and strategy_options is not None:
        config = config.merge(strategy_options=strategy_options)
    executor = RetryExecutor(
        config,
        strategy=strategy,
        callbacks=CallbackConfig(
            on_retry=on_retry,
            on_success=on_success,
            on_failure=on_failure,
            on_progress=on_progress,
        ),
        handler_manager=handler_manager,
    )
    if retry_if is not None:
        executor.retry_if(retry_if)
    elif retry_unless is not None:
        executor.retry_unless(retry_unless)
    return executor.run(operation, extra_patterns, extra_exception_types)


def retryable(**kwargs: Any) -> Callable[[Callable[..., Any]], Callable[..., RetryResult]]:
    """Decorate a function so that each call runs with retry logic.

    The decorated function returns a ``RetryResult`` instead of the
    value of the function.

    Args:
        **kwargs: Keyword arguments of ``retry_call``.

    Returns:
        The decorator.

    Example:
        ```pycon
        >>> from aretry import retryable
        >>> @retryable(max_retries=1, delay=0.0)
        ... def divide(a, b):
        ...     return a / b
        ...
        >>> divide(6, 3).value()
        2.0
        >>> divide(1, 0).failed
        True

        ```
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., RetryResult]:
        @functools.wraps(func)
        def wrapper(*args: Any, **func_kwargs: Any) -> RetryResult:
            return retry_call(functools.partial(func, *args, **func_kwargs), **kwargs)

        return wrapper

    return decorator

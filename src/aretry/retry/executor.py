r"""Retry executor running an operation until it succeeds or gives up.

This module provides the RetryExecutor class that orchestrates the
retry loop: it calls the operation, classifies failures, consults the
active strategy, waits between attempts and reports progress through
the lifecycle callbacks.
"""

from __future__ import annotations

__all__ = ["RetryExecutor"]

import logging
import threading
import time
from typing import TYPE_CHECKING, Any

from aretry.config import CallbackConfig, RetryConfig
from aretry.exceptions import MaxRetriesExceededError
from aretry.handlers.classifier import ExceptionClassifier
from aretry.handlers.manager import ExceptionHandlerManager
from aretry.retry.context import RetryContext
from aretry.retry.decider import RetryDecider
from aretry.retry.manager import CallbackManager
from aretry.retry.result import RetryResult
from aretry.strategies.base import BaseRetryStrategy
from aretry.strategies.factory import StrategyFactory
from aretry.strategies.response_content import ResponseContentStrategy
from aretry.strategies.total_timeout import TotalTimeoutStrategy
from aretry.utils.structured_logging import operation_scope

if TYPE_CHECKING:
    import re
    from collections.abc import Callable, Iterable

    from aretry.retry.context import AttemptRecord

logger: logging.Logger = logging.getLogger(__name__)


class RetryExecutor:
    r"""Execute an operation with retry logic.

    A run makes at most ``max_retries + 1`` attempts. A run never raises
    for errors of the operation: the outcome is returned as a
    ``RetryResult``. Only ``BaseException`` subclasses that are not
    ``Exception`` (e.g. ``KeyboardInterrupt``) propagate.

    Args:
        config: The retry configuration. Defaults to ``RetryConfig()``.
        strategy: A strategy instance or identifier. Defaults to the
            strategy named by ``config.strategy``.
        callbacks: The lifecycle callbacks.
        handler_manager: The exception handler registry. Defaults to a
            registry with the built-in handlers.

    Example:
        ```pycon
        >>> from unittest.mock import Mock
        >>> from aretry import RetryConfig, RetryExecutor
        >>> from aretry.strategies import FixedDelayStrategy
        >>> operation = Mock(side_effect=[TimeoutError("slow"), "ok"])
        >>> executor = RetryExecutor(RetryConfig(max_retries=2), strategy=FixedDelayStrategy(0.0))
        >>> result = executor.run(operation)
        >>> result.value(), executor.exception_count
        ('ok', 1)

        ```
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        strategy: BaseRetryStrategy | str | None = None,
        callbacks: CallbackConfig | None = None,
        handler_manager: ExceptionHandlerManager | None = None,
    ) -> None:
        self.config = config if config is not None else RetryConfig()
        if handler_manager is None:
            handler_manager = ExceptionHandlerManager().register_default_handlers()
        if self.config.handler_paths:
            handler_manager.load_handlers(self.config.handler_paths)
        self.decider = RetryDecider(ExceptionClassifier(handler_manager))
        self.callback_config = callbacks if callbacks is not None else CallbackConfig()
        self.strategy = self._resolve_strategy(strategy)
        self._metadata: dict[str, Any] = {}
        self._context = RetryContext(self.config.max_retries)

    def __repr__(self) -> str:
        return (
            f"{type(self).__qualname__}(max_retries={self.config.max_retries}, "
            f"strategy={self.strategy!r})"
        )

    @property
    def context(self) -> RetryContext:
        """The context of the last run."""
        return self._context

    @property
    def exception_history(self) -> list[AttemptRecord]:
        return self._context.exception_history

    @property
    def exception_count(self) -> int:
        return self._context.exception_count

    @property
    def retryable_exception_count(self) -> int:
        return self._context.retryable_exception_count

    def with_strategy(
        self, strategy: BaseRetryStrategy | str, options: dict[str, Any] | None = None
    ) -> RetryExecutor:
        """Set the active strategy.

        Args:
            strategy: A strategy instance, alias or dotted path.
            options: Keyword arguments used when ``strategy`` is an
                identifier.

        Returns:
            The executor.
        """
        self.strategy = self._resolve_strategy(strategy, options)
        return self

    def retry_if(self, predicate: Callable[[Exception, dict[str, Any]], bool]) -> RetryExecutor:
        """Retry only when ``predicate(error, snapshot)`` returns true.

        The predicate replaces classification and the strategy's
        decision. The snapshot holds ``attempt``, ``max_retries``,
        ``remaining_attempts`` and ``exception_history``.
        """
        self.decider.retry_if = predicate
        return self

    def retry_unless(self, predicate: Callable[[Exception, dict[str, Any]], bool]) -> RetryExecutor:
        """Retry only when ``predicate(error, snapshot)`` returns false."""
        self.decider.retry_if = lambda error, snapshot: not predicate(error, snapshot)
        return self

    def with_progress(self, callback: Callable[[str], None]) -> RetryExecutor:
        self.callback_config = self.callback_config.merge(on_progress=callback)
        return self

    def with_metadata(self, **metadata: Any) -> RetryExecutor:
        """Add metadata copied into the context of every run."""
        self._metadata.update(metadata)
        return self

    def with_max_retries(self, max_retries: int) -> RetryExecutor:
        self.config = self.config.merge(max_retries=max_retries)
        return self

    def with_timeout(self, timeout: float) -> RetryExecutor:
        self.config = self.config.merge(timeout=timeout)
        return self

    def run(
        self,
        operation: Callable[[], Any],
        extra_patterns: Iterable[str | re.Pattern[str]] = (),
        extra_exception_types: Iterable[type[BaseException]] = (),
    ) -> RetryResult:
        """Run an operation with retry logic.

        Args:
            operation: The zero-argument operation.
            extra_patterns: Message patterns classified retryable for this
                run only.
            extra_exception_types: Exception types classified retryable
                for this run only.

        Returns:
            A successful result with the value of the operation, or a
            failed result with the final error. Both carry the records of
            the failed attempts.
        """
        context = RetryContext(self.config.max_retries)
        context.add_metadata(**self._metadata)
        self._context = context

        strategy = self.strategy
        if self.config.total_timeout is not None:
            strategy = TotalTimeoutStrategy(strategy, self.config.total_timeout)

        patterns = (*self.config.retryable_patterns, *extra_patterns)
        exception_types = (*self.config.retryable_exceptions, *extra_exception_types)
        callbacks = CallbackManager(
            self.callback_config, dispatch_events=self.config.dispatch_events
        )
        with operation_scope(context.operation_id):
            return self._run(operation, context, strategy, callbacks, patterns, exception_types)

    def _run(
        self,
        operation: Callable[[], Any],
        context: RetryContext,
        strategy: BaseRetryStrategy,
        callbacks: CallbackManager,
        patterns: tuple[str | re.Pattern[str], ...],
        exception_types: tuple[type[BaseException], ...],
    ) -> RetryResult:
        max_retries = self.config.max_retries
        delay = 0.0
        for attempt in range(max_retries + 1):
            start = time.monotonic()
            try:
                value = operation()
            except Exception as error:
                duration = time.monotonic() - start
                self._check_timeout(attempt, duration)

                try:
                    classification = self.decider.classify(error, patterns, exception_types)
                except Exception as exc:  # noqa: BLE001
                    context.record_attempt(attempt, duration, error=error, delay=delay)
                    return self._fail(context, callbacks, attempt, exc, stage="classification")
                context.record_attempt(
                    attempt,
                    duration,
                    error=error,
                    was_retryable=classification.retryable,
                    delay=delay,
                )

                try:
                    retry, reason = self.decider.should_retry(
                        error,
                        classification,
                        attempt,
                        max_retries,
                        strategy,
                        context.exception_history,
                    )
                    delay = _bound_delay(strategy.delay(attempt)) if retry else 0.0
                except Exception as exc:  # noqa: BLE001
                    return self._fail(context, callbacks, attempt, exc, stage="retry decision")

                if not retry:
                    logger.debug(f"Not retrying after attempt {attempt + 1}: {reason}")
                    return self._fail(context, callbacks, attempt, error)

                message = (
                    f"Attempt {attempt + 1} failed: {error}. Retrying in {delay:.2f} seconds... "
                    f"({max_retries - attempt} attempts remaining)"
                )
                logger.warning(message)
                callbacks.on_progress(message)
                callbacks.on_retry(context, attempt, delay, error)
                time.sleep(delay)
                context.record_delay(delay)
                continue

            duration = time.monotonic() - start
            self._check_timeout(attempt, duration)
            context.record_attempt(attempt, duration)
            self._record_success(strategy)
            logger.debug(f"Operation {context.operation_id} succeeded on attempt {attempt + 1}")
            callbacks.on_success(context, attempt, value, duration)
            return RetryResult(value=value, exception_history=context.exception_history)

        # The loop always returns: the last attempt cannot be retried.
        return self._fail(context, callbacks, max_retries, MaxRetriesExceededError(max_retries))

    def _fail(
        self,
        context: RetryContext,
        callbacks: CallbackManager,
        attempt: int,
        error: Exception,
        stage: str | None = None,
    ) -> RetryResult:
        if stage is not None:
            logger.warning(f"Error during {stage} on attempt {attempt + 1}: {error}")
        logger.debug(f"Operation {context.operation_id} failed after {attempt + 1} attempts")
        callbacks.on_failure(context, attempt, error)
        return RetryResult(error=error, exception_history=context.exception_history)

    def _check_timeout(self, attempt: int, duration: float) -> None:
        timeout = self.config.timeout
        if timeout is not None and duration > timeout:
            logger.warning(
                f"Attempt {attempt + 1} took {duration:.2f} seconds, "
                f"longer than the timeout of {timeout:.2f} seconds"
            )

    @staticmethod
    def _record_success(strategy: BaseRetryStrategy) -> None:
        try:
            strategy.record_success()
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Error recording success in {type(strategy).__qualname__}: {exc}")

    def _resolve_strategy(
        self, strategy: BaseRetryStrategy | str | None, options: dict[str, Any] | None = None
    ) -> BaseRetryStrategy:
        if isinstance(strategy, BaseRetryStrategy):
            return strategy
        if strategy is None:
            strategy = self.config.strategy
            options = self.config.strategy_options if options is None else options
        options = dict(options or {})
        if StrategyFactory.resolve(strategy) is ResponseContentStrategy:
            options.setdefault("patterns", self.config.response_patterns)
            options.setdefault("error_codes", self.config.response_error_codes)
            options.setdefault("error_code_paths", self.config.response_error_code_paths)
        return StrategyFactory.make(strategy, options, base_delay=self.config.delay)


def _bound_delay(delay: float) -> float:
    # time.sleep rejects values it cannot convert to a platform timeout.
    return min(max(0.0, delay), threading.TIMEOUT_MAX)

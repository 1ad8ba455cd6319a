r"""Retry decision logic for determining whether to retry operations.

This module provides the RetryDecider class that encapsulates the logic
for deciding whether a failed attempt should be retried based on the
exception classification, the active strategy and custom predicates.
"""

from __future__ import annotations

__all__ = ["RetryDecider"]

import logging
from typing import TYPE_CHECKING, Any

from aretry.handlers.classifier import ExceptionClassifier

if TYPE_CHECKING:
    import re
    from collections.abc import Callable, Iterable

    from aretry.handlers.classifier import Classification
    from aretry.retry.context import AttemptRecord
    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)


class RetryDecider:
    """Decides whether a failed attempt should be retried.

    Args:
        classifier: The exception classifier. Defaults to a classifier
            with the built-in handlers.
        retry_if: Optional predicate receiving ``(error, snapshot)``.
            When set, it alone decides retryability: classification and
            the strategy's decision are ignored. The snapshot holds
            ``attempt``, ``max_retries``, ``remaining_attempts`` and
            ``exception_history``.
    """

    def __init__(
        self,
        classifier: ExceptionClassifier | None = None,
        retry_if: Callable[[Exception, dict[str, Any]], bool] | None = None,
    ) -> None:
        self.classifier = classifier if classifier is not None else ExceptionClassifier()
        self.retry_if = retry_if

    def classify(
        self,
        error: Exception,
        extra_patterns: Iterable[str | re.Pattern[str]] = (),
        extra_exception_types: Iterable[type[BaseException]] = (),
    ) -> Classification:
        return self.classifier.classify(error, extra_patterns, extra_exception_types)

    def should_retry(
        self,
        error: Exception,
        classification: Classification,
        attempt: int,
        max_retries: int,
        strategy: BaseRetryStrategy,
        exception_history: list[AttemptRecord],
    ) -> tuple[bool, str]:
        """Determine if a failed attempt should be retried.

        Whatever the predicate or the strategy answer, no retry is made
        once ``attempt >= max_retries``.

        Args:
            error: The exception raised by the attempt.
            classification: The classification of ``error``.
            attempt: The attempt that failed (0-indexed).
            max_retries: Maximum number of retries.
            strategy: The active strategy.
            exception_history: The records of the failed attempts,
                including this one.

        Returns:
            Tuple of (should_retry, reason).
        """
        if self.retry_if is not None:
            snapshot = {
                "attempt": attempt,
                "max_retries": max_retries,
                "remaining_attempts": max(0, max_retries - attempt),
                "exception_history": list(exception_history),
            }
            if not self.retry_if(error, snapshot) or attempt >= max_retries:
                return (False, "retry_if returned False or max retries")
            return (True, "retry_if predicate")

        if not classification.retryable:
            return (False, classification.reason)

        # The strategy sees every retryable failure, stateful strategies
        # count them even on the last attempt.
        allowed = strategy.should_retry(attempt, max_retries, error)
        if attempt >= max_retries:
            return (False, "max retries exhausted")
        if not allowed:
            return (False, f"{type(strategy).__qualname__} denied the retry")
        return (True, classification.reason)

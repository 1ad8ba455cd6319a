r"""Callback manager for orchestrating retry lifecycle events.

This module provides the CallbackManager class that handles invocation
of user-defined callbacks at various points in the retry lifecycle.
Errors raised by callbacks are logged and never change the outcome of a
run.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import logging
from typing import TYPE_CHECKING, Any

from aretry.callbacks import invoke_on_failure, invoke_on_retry, invoke_on_success

if TYPE_CHECKING:
    from aretry.config import CallbackConfig
    from aretry.retry.context import RetryContext

logger: logging.Logger = logging.getLogger(__name__)


class CallbackManager:
    """Manages callback invocations during the retry lifecycle.

    Args:
        callbacks: Callback configuration.
        dispatch_events: Whether the on_retry, on_success and on_failure
            callbacks are invoked. The progress callback is always
            invoked.
    """

    def __init__(self, callbacks: CallbackConfig, dispatch_events: bool = True) -> None:
        self.callbacks = callbacks
        self.dispatch_events = dispatch_events

    def on_progress(self, message: str) -> None:
        if self.callbacks.on_progress is None:
            return
        try:
            self.callbacks.on_progress(message)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error in on_progress callback: {e}")

    def on_retry(self, context: RetryContext, attempt: int, delay: float, error: Exception) -> None:
        """Invoke on_retry callback.

        Args:
            context: The context of the run.
            attempt: Current attempt number (0-indexed).
            delay: Delay before the retry.
            error: Exception that triggered the retry.
        """
        if not self.dispatch_events:
            return
        self._safely(
            "on_retry",
            invoke_on_retry,
            self.callbacks.on_retry,
            operation_id=context.operation_id,
            attempt=attempt,
            max_retries=context.max_retries,
            delay=delay,
            error=error,
            context=context.snapshot(),
        )

    def on_success(self, context: RetryContext, attempt: int, value: Any, duration: float) -> None:
        """Invoke on_success callback.

        Args:
            context: The context of the run.
            attempt: Attempt number that succeeded (0-indexed).
            value: The value returned by the operation.
            duration: Duration of the successful attempt.
        """
        if not self.dispatch_events:
            return
        self._safely(
            "on_success",
            invoke_on_success,
            self.callbacks.on_success,
            operation_id=context.operation_id,
            attempt=attempt,
            max_retries=context.max_retries,
            value=value,
            duration=duration,
            total_time=context.metrics()["total_elapsed_time"],
            context=context.snapshot(),
        )

    def on_failure(self, context: RetryContext, attempt: int, error: Exception) -> None:
        """Invoke on_failure callback.

        Args:
            context: The context of the run.
            attempt: Final attempt number (0-indexed).
            error: The error that caused failure.
        """
        if not self.dispatch_events:
            return
        self._safely(
            "on_failure",
            invoke_on_failure,
            self.callbacks.on_failure,
            operation_id=context.operation_id,
            attempt=attempt,
            max_retries=context.max_retries,
            error=error,
            exception_history=context.exception_history,
            total_time=context.metrics()["total_elapsed_time"],
            context=context.snapshot(),
        )

    @staticmethod
    def _safely(name: str, invoke: Any, callback: Any, **kwargs: Any) -> None:
        if callback is None:
            return
        try:
            invoke(callback, **kwargs)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error in {name} callback: {e}")

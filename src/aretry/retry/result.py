r"""Promise-like result of a retried operation."""

from __future__ import annotations

__all__ = ["RetryResult"]

import logging
from typing import TYPE_CHECKING, Any

from aretry.dead_letter import default_dead_letter_handler

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from aretry.dead_letter import DeadLetterQueueHandler
    from aretry.retry.context import AttemptRecord

logger: logging.Logger = logging.getLogger(__name__)


class RetryResult:
    r"""Outcome of a retried operation: a value or an error.

    A result succeeded if and only if ``error`` is ``None``. Results are
    immutable: ``then``, ``catch`` and ``finally_`` return new results
    and carry the exception history over. Errors raised by their
    callbacks become the error of the new result. Only ``value``,
    ``throw`` and ``throw_first`` raise.

    Args:
        value: The value of a successful operation.
        error: The final error of a failed operation.
        exception_history: The records of the failed attempts.

    Example:
        ```pycon
        >>> from aretry.retry import RetryResult
        >>> RetryResult(value=2).then(lambda v: v * 10).value()
        20
        >>> result = RetryResult(error=TimeoutError("slow")).catch(lambda e: f"fallback: {e}")
        >>> result.succeeded, result.value()
        (True, 'fallback: slow')
        >>> RetryResult(value=1).then(lambda v: v / 0).failed
        True

        ```
    """

    __slots__ = ("_error", "_exception_history", "_value")

    def __init__(
        self,
        value: Any = None,
        error: BaseException | None = None,
        exception_history: Iterable[AttemptRecord] = (),
    ) -> None:
        self._value = None if error is not None else value
        self._error = error
        self._exception_history: tuple[AttemptRecord, ...] = tuple(exception_history)

    def __repr__(self) -> str:
        if self._error is not None:
            return f"{type(self).__qualname__}(error={self._error!r})"
        return f"{type(self).__qualname__}(value={self._value!r})"

    @property
    def succeeded(self) -> bool:
        return self._error is None

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def result(self) -> Any:
        """The value, or ``None`` if the operation failed."""
        return self._value

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def exception_history(self) -> list[AttemptRecord]:
        return list(self._exception_history)

    def then(self, callback: Callable[[Any], Any]) -> RetryResult:
        """Transform the value of a successful result.

        Args:
            callback: Receives the value and returns the new value.

        Returns:
            A new result with the callback's return value, or with its
            error if it raises. Failed results are returned unchanged.
        """
        if self.failed:
            return self
        try:
            return RetryResult(value=callback(self._value), exception_history=self._exception_history)
        except Exception as exc:  # noqa: BLE001
            return RetryResult(error=exc, exception_history=self._exception_history)

    def catch(self, callback: Callable[[BaseException], Any]) -> RetryResult:
        """Recover from the error of a failed result.

        Args:
            callback: Receives the error and returns a value.

        Returns:
            A new successful result with the callback's return value, or a
            failed result with its error if it raises. Successful results
            are returned unchanged.
        """
        if self.succeeded:
            return self
        try:
            return RetryResult(value=callback(self._error), exception_history=self._exception_history)
        except Exception as exc:  # noqa: BLE001
            return RetryResult(error=exc, exception_history=self._exception_history)

    def finally_(self, callback: Callable[[], Any]) -> RetryResult:
        """Run a callback whatever the outcome.

        Args:
            callback: Called once without arguments.

        Returns:
            This result, or a failed result with the callback's error if it
            raises.
        """
        try:
            callback()
        except Exception as exc:  # noqa: BLE001
            return RetryResult(error=exc, exception_history=self._exception_history)
        return self

    def value(self) -> Any:
        """Return the value or raise the error."""
        if self._error is not None:
            raise self._error
        return self._value

    def throw(self) -> None:
        """Raise the error of a failed result."""
        if self._error is not None:
            raise self._error

    def throw_first(self) -> None:
        """Raise the first error of the exception history.

        Useful to diagnose the root cause when the final error only
        reports the last attempt. Falls back to the final error when the
        history is empty.
        """
        if self._exception_history:
            raise self._exception_history[0].exception
        self.throw()

    def to_dead_letter_queue(
        self,
        handler: DeadLetterQueueHandler | None = None,
        operation: str = "",
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """Store a failed result in a dead-letter queue.

        Args:
            handler: The dead-letter queue handler. Defaults to the
                process-wide handler.
            operation: A name describing the operation.
            context: Extra information stored with the entry.

        Returns:
            The identifier of the entry, or ``None`` for successful
            results.
        """
        if self.succeeded:
            return None
        handler = handler if handler is not None else default_dead_letter_handler()
        return handler.handle(self, operation=operation, context=context)

r"""Strategy defined entirely by callbacks."""

from __future__ import annotations

__all__ = ["CallbackRetryStrategy"]

import sys
from typing import TYPE_CHECKING, Any

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.validation import validate_delay_params

if TYPE_CHECKING:
    from collections.abc import Callable


class CallbackRetryStrategy(BaseRetryStrategy):
    r"""Strategy whose delay and retry decision are plain functions.

    ``should_retry`` remembers the last error and the maximum number of
    attempts it was given, and ``delay`` passes them to the delay
    callback, so a delay can depend on the failure that caused it.

    Args:
        delay_callback: Receives ``(attempt, base_delay, max_attempts,
            last_error, options)`` and returns the delay in seconds.
            ``max_attempts`` is ``sys.maxsize`` until ``should_retry``
            has been called. Negative delays are clamped to 0.
        should_retry_callback: Optional callable receiving ``(attempt,
            max_attempts, last_error, options)``. Defaults to
            ``attempt < max_attempts``.
        base_delay: The base delay in seconds passed to the delay
            callback.
        options: Options passed to both callbacks.

    Example:
        ```pycon
        >>> from aretry.strategies import CallbackRetryStrategy
        >>> strategy = CallbackRetryStrategy(
        ...     lambda attempt, base_delay, max_attempts, error, options: base_delay * (attempt + 1),
        ...     base_delay=0.5,
        ... )
        >>> strategy.delay(3)
        2.0
        >>> strategy.should_retry(3, 3)
        False

        ```
    """

    def __init__(
        self,
        delay_callback: Callable[[int, float, int, BaseException | None, dict[str, Any]], float],
        should_retry_callback: (
            Callable[[int, int, BaseException | None, dict[str, Any]], bool] | None
        ) = None,
        base_delay: float = 1.0,
        options: dict[str, Any] | None = None,
    ) -> None:
        validate_delay_params(base_delay)
        self.delay_callback = delay_callback
        self.should_retry_callback = should_retry_callback
        self.base_delay = base_delay
        self.options = dict(options or {})
        self._last_error: BaseException | None = None
        self._max_attempts = sys.maxsize

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        self._last_error = last_error
        self._max_attempts = max_attempts
        if self.should_retry_callback is None:
            return attempt < max_attempts
        return bool(self.should_retry_callback(attempt, max_attempts, last_error, self.options))

    def delay(self, attempt: int) -> float:
        delay = self.delay_callback(
            attempt, self.base_delay, self._max_attempts, self._last_error, self.options
        )
        return max(0.0, float(delay))

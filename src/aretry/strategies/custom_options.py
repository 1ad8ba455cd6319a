r"""Decorator strategy with pluggable callbacks and an options bag."""

from __future__ import annotations

__all__ = ["CustomOptionsStrategy"]

from typing import TYPE_CHECKING, Any

from aretry.strategies.base import BaseDecoratorStrategy

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.strategies.base import BaseRetryStrategy


class CustomOptionsStrategy(BaseDecoratorStrategy):
    r"""Override ``should_retry`` and ``delay`` with callbacks.

    The callbacks receive a mutable options bag, so their behavior can be
    tuned at runtime with ``set_option``. When a callback is not set, the
    inner strategy answers.

    Args:
        inner: The wrapped strategy.
        options: The initial options.

    Example:
        ```pycon
        >>> from aretry.strategies import CustomOptionsStrategy, FixedDelayStrategy
        >>> strategy = CustomOptionsStrategy(FixedDelayStrategy(base_delay=1.0), {"factor": 3})
        >>> strategy.delay(2)
        1.0
        >>> strategy = strategy.with_delay_callback(
        ...     lambda attempt, options: attempt * options["factor"]
        ... )
        >>> strategy.delay(2)
        6.0
        >>> strategy.set_option("factor", 0.5).delay(2)
        1.0

        ```
    """

    def __init__(self, inner: BaseRetryStrategy, options: dict[str, Any] | None = None) -> None:
        super().__init__(inner)
        self._options: dict[str, Any] = dict(options or {})
        self._should_retry_callback: (
            Callable[[int, int, BaseException | None, dict[str, Any]], bool] | None
        ) = None
        self._delay_callback: Callable[[int, dict[str, Any]], float] | None = None

    @property
    def options(self) -> dict[str, Any]:
        return dict(self._options)

    def with_should_retry_callback(
        self, callback: Callable[[int, int, BaseException | None, dict[str, Any]], bool]
    ) -> CustomOptionsStrategy:
        """Set the callback deciding whether to retry.

        Args:
            callback: Receives ``(attempt, max_attempts, last_error,
                options)``.

        Returns:
            The strategy, for chaining.
        """
        self._should_retry_callback = callback
        return self

    def with_delay_callback(
        self, callback: Callable[[int, dict[str, Any]], float]
    ) -> CustomOptionsStrategy:
        """Set the callback computing delays.

        Args:
            callback: Receives ``(attempt, options)``.

        Returns:
            The strategy, for chaining.
        """
        self._delay_callback = callback
        return self

    def get_option(self, key: str, default: Any = None) -> Any:
        return self._options.get(key, default)

    def set_option(self, key: str, value: Any) -> CustomOptionsStrategy:
        self._options[key] = value
        return self

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        if self._should_retry_callback is not None:
            return bool(self._should_retry_callback(attempt, max_attempts, last_error, self._options))
        return self.inner.should_retry(attempt, max_attempts, last_error)

    def delay(self, attempt: int) -> float:
        if self._delay_callback is not None:
            return max(0.0, float(self._delay_callback(attempt, self._options)))
        return self.inner.delay(attempt)

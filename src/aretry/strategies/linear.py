r"""Linear backoff strategy."""

from __future__ import annotations

__all__ = ["LinearBackoffStrategy"]

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.validation import validate_delay_params


class LinearBackoffStrategy(BaseRetryStrategy):
    """Linear backoff strategy.

    Calculates delay as: base_delay + increment * attempt, capped at
    max_delay if set and never negative.

    A negative increment produces shrinking delays, which are clamped at
    zero.

    Args:
        base_delay: The delay in seconds before the first retry
            (default: 1.0).
        increment: Seconds added for each further attempt (default: 1.0).
        max_delay: Optional maximum delay cap in seconds.

    Example:
        ```pycon
        >>> from aretry.strategies import LinearBackoffStrategy
        >>> strategy = LinearBackoffStrategy(base_delay=1.0, increment=0.5)
        >>> strategy.delay(0)
        1.0
        >>> strategy.delay(2)
        2.0
        >>> LinearBackoffStrategy(base_delay=2.0, max_delay=5.0).delay(10)
        5.0

        ```
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        increment: float = 1.0,
        max_delay: float | None = None,
    ) -> None:
        validate_delay_params(base_delay, max_delay)
        self.base_delay = base_delay
        self.increment = increment
        self.max_delay = max_delay

    def delay(self, attempt: int) -> float:
        delay = self.base_delay + self.increment * attempt
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return max(0.0, delay)

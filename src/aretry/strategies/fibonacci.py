r"""Fibonacci backoff strategy."""

from __future__ import annotations

__all__ = ["FibonacciBackoffStrategy"]

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.jitter import scale_jitter
from aretry.utils.validation import validate_delay_params

# Fibonacci numbers past this index are replaced by FIBONACCI_SENTINEL.
MAX_FIBONACCI_INDEX = 70
FIBONACCI_SENTINEL = 1_000_000_000


class FibonacciBackoffStrategy(BaseRetryStrategy):
    """Fibonacci backoff strategy.

    Calculates delay as: base_delay * fibonacci(attempt + 1), with optional
    max_delay cap.

    This strategy provides a middle ground between linear and exponential
    backoff, starting slow and ramping up gradually. The Fibonacci sequence
    (1, 1, 2, 3, 5, 8, 13, ...) provides a more gradual increase than
    exponential backoff.

    Args:
        base_delay: The base delay in seconds (default: 1.0).
        max_delay: Optional maximum delay cap in seconds.
        with_jitter: Whether to scale delays by a random factor in
            [0.8, 1.2] (default: False).

    Example:
        ```pycon
        >>> from aretry.strategies import FibonacciBackoffStrategy
        >>> strategy = FibonacciBackoffStrategy(base_delay=1.0)
        >>> [strategy.delay(attempt) for attempt in range(6)]
        [1.0, 1.0, 2.0, 3.0, 5.0, 8.0]
        >>> FibonacciBackoffStrategy(base_delay=1.0, max_delay=10.0).delay(10)
        10.0

        ```
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float | None = None,
        with_jitter: bool = False,
    ) -> None:
        validate_delay_params(base_delay, max_delay)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.with_jitter = with_jitter

    @staticmethod
    def _fibonacci(n: int) -> int:
        """Calculate the nth Fibonacci number (1-indexed).

        Args:
            n: The position in the Fibonacci sequence (1-indexed).

        Returns:
            The nth Fibonacci number, or ``FIBONACCI_SENTINEL`` when ``n``
            exceeds ``MAX_FIBONACCI_INDEX``.
        """
        if n <= 0:
            return 0
        if n <= 2:
            return 1
        if n > MAX_FIBONACCI_INDEX:
            return FIBONACCI_SENTINEL

        a, b = 1, 1
        for _ in range(n - 2):
            a, b = b, a + b
        return b

    def delay(self, attempt: int) -> float:
        delay = self.base_delay * self._fibonacci(attempt + 1)
        if self.with_jitter:
            delay = scale_jitter(delay)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return max(0.0, float(delay))

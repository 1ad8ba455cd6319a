r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoffStrategy"]

import sys

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.jitter import apply_jitter
from aretry.utils.validation import validate_delay_params, validate_jitter_percent


class ExponentialBackoffStrategy(BaseRetryStrategy):
    """Exponential backoff strategy.

    Calculates delay as: base_delay * (multiplier ** attempt), optionally
    jittered by ±jitter_percent, then capped at max_delay if set.

    This is the default strategy and works well for most scenarios where
    you want progressively longer delays between retries.

    Args:
        base_delay: The delay in seconds before the first retry
            (default: 1.0).
        multiplier: The growth factor between consecutive delays
            (default: 2.0).
        max_delay: Optional maximum delay cap in seconds.
        with_jitter: Whether to randomize delays (default: False).
        jitter_percent: The jitter range as a fraction of the delay
            (default: 0.2 for ±20%).

    Example:
        ```pycon
        >>> from aretry.strategies import ExponentialBackoffStrategy
        >>> strategy = ExponentialBackoffStrategy(base_delay=0.5)
        >>> strategy.delay(0)  # First retry
        0.5
        >>> strategy.delay(1)  # Second retry
        1.0
        >>> strategy.delay(2)  # Third retry
        2.0
        >>> # With max_delay cap
        >>> strategy = ExponentialBackoffStrategy(base_delay=1.0, max_delay=5.0)
        >>> strategy.delay(10)  # Would be 1024.0, but capped
        5.0

        ```
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float | None = None,
        with_jitter: bool = False,
        jitter_percent: float = 0.2,
    ) -> None:
        validate_delay_params(base_delay, max_delay)
        validate_jitter_percent(jitter_percent)
        if multiplier <= 0:
            msg = f"multiplier must be positive, got {multiplier}"
            raise ValueError(msg)

        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.with_jitter = with_jitter
        self.jitter_percent = jitter_percent

    def delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        Args:
            attempt: The current attempt number (0-indexed).

        Returns:
            The calculated delay: base_delay * (multiplier ** attempt),
            jittered if enabled and capped at max_delay if set.
        """
        try:
            delay = self.base_delay * (self.multiplier**attempt)
        except OverflowError:
            delay = sys.float_info.max
        if self.with_jitter:
            delay = apply_jitter(delay, self.jitter_percent)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return max(0.0, delay)

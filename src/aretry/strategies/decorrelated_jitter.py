r"""Decorrelated jitter strategy."""

from __future__ import annotations

__all__ = ["DecorrelatedJitterStrategy"]

import random

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.validation import validate_delay_params

# Keeps 2 ** attempt representable as a float.
MAX_EXPONENT = 1000


class DecorrelatedJitterStrategy(BaseRetryStrategy):
    """AWS-style decorrelated jitter strategy.

    Picks each delay uniformly in
    ``[base_delay * min_factor, min(max_delay, base_delay * max_factor * 2 ** attempt)]``.
    Randomizing over a growing window spreads out retries from many
    clients that failed at the same time.

    Args:
        base_delay: The base delay in seconds (default: 1.0).
        max_delay: Optional maximum delay cap in seconds.
        min_factor: Multiplier of base_delay for the lower bound
            (default: 1.0).
        max_factor: Multiplier of base_delay for the upper bound before
            exponential growth (default: 3.0).

    Raises:
        ValueError: If the factors are inconsistent or ``max_delay`` is
            below the lower bound.

    Example:
        ```pycon
        >>> from aretry.strategies import DecorrelatedJitterStrategy
        >>> strategy = DecorrelatedJitterStrategy(base_delay=1.0, max_delay=10.0)
        >>> 1.0 <= strategy.delay(0) <= 3.0
        True
        >>> 1.0 <= strategy.delay(20) <= 10.0
        True

        ```
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float | None = None,
        min_factor: float = 1.0,
        max_factor: float = 3.0,
    ) -> None:
        validate_delay_params(base_delay, max_delay)
        if min_factor < 0:
            msg = f"min_factor must be non-negative, got {min_factor}"
            raise ValueError(msg)
        if min_factor > max_factor:
            msg = f"min_factor must be <= max_factor, got {min_factor} > {max_factor}"
            raise ValueError(msg)
        if max_delay is not None and max_delay < base_delay * min_factor:
            msg = (
                f"max_delay must be >= base_delay * min_factor "
                f"({base_delay * min_factor}), got {max_delay}"
            )
            raise ValueError(msg)

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.min_factor = min_factor
        self.max_factor = max_factor

    def bounds(self, attempt: int) -> tuple[float, float]:
        """Return the ``(low, high)`` window the delay is drawn from."""
        low = self.base_delay * self.min_factor
        high = self.base_delay * self.max_factor * 2.0 ** min(attempt, MAX_EXPONENT)
        if self.max_delay is not None:
            high = min(high, self.max_delay)
        return min(low, high), high

    def delay(self, attempt: int) -> float:
        low, high = self.bounds(attempt)
        return max(0.0, random.uniform(low, high))  # noqa: S311

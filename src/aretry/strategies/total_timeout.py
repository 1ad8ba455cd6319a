r"""Total timeout decorator strategy."""

from __future__ import annotations

__all__ = ["TotalTimeoutStrategy"]

import logging
import time
from typing import TYPE_CHECKING

from aretry.strategies.base import BaseDecoratorStrategy

if TYPE_CHECKING:
    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)


class TotalTimeoutStrategy(BaseDecoratorStrategy):
    r"""Bound the total time spent retrying.

    The clock starts when the strategy is created. Once ``total_timeout``
    seconds have elapsed, retries are denied. Delays requested by the
    inner strategy are clamped to the remaining budget minus
    ``safety_margin`` so the next attempt starts before the deadline.

    Args:
        inner: The wrapped strategy.
        total_timeout: The total time budget in seconds. Must be > 0.
        safety_margin: Seconds kept in reserve when clamping a delay.
            Must be >= 0.

    Example:
        ```pycon
        >>> from aretry.strategies import FixedDelayStrategy, TotalTimeoutStrategy
        >>> strategy = TotalTimeoutStrategy(FixedDelayStrategy(base_delay=5.0), total_timeout=1.0)
        >>> strategy.should_retry(0, 3)
        True
        >>> strategy.delay(0) <= 1.0
        True

        ```
    """

    def __init__(
        self,
        inner: BaseRetryStrategy,
        total_timeout: float,
        safety_margin: float = 0.1,
    ) -> None:
        super().__init__(inner)
        if total_timeout <= 0:
            msg = f"total_timeout must be > 0, got {total_timeout}"
            raise ValueError(msg)
        if safety_margin < 0:
            msg = f"safety_margin must be non-negative, got {safety_margin}"
            raise ValueError(msg)
        self.total_timeout = total_timeout
        self.safety_margin = safety_margin
        self._start_time = time.monotonic()

    @property
    def elapsed_time(self) -> float:
        """Seconds elapsed since the strategy was created or reset."""
        return time.monotonic() - self._start_time

    @property
    def remaining_time(self) -> float:
        """Seconds left in the budget, never negative."""
        return max(0.0, self.total_timeout - self.elapsed_time)

    def reset_start_time(self) -> None:
        """Restart the clock."""
        self._start_time = time.monotonic()

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        elapsed = self.elapsed_time
        if elapsed >= self.total_timeout:
            logger.debug(
                f"Total timeout of {self.total_timeout}s exceeded "
                f"(elapsed: {elapsed:.2f}s), denying retry"
            )
            return False
        return self.inner.should_retry(attempt, max_attempts, last_error)

    def delay(self, attempt: int) -> float:
        remaining = self.remaining_time
        if remaining <= 0:
            return 0.0
        delay = self.inner.delay(attempt)
        if delay > remaining:
            delay = max(0.0, remaining - self.safety_margin)
            logger.debug(f"Clamping delay to {delay:.2f}s to stay within the total timeout")
        return delay

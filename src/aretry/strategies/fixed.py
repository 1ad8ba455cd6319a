r"""Fixed delay strategy."""

from __future__ import annotations

__all__ = ["FixedDelayStrategy"]

from aretry.strategies.base import BaseRetryStrategy
from aretry.utils.jitter import apply_jitter
from aretry.utils.validation import validate_delay_params, validate_jitter_percent


class FixedDelayStrategy(BaseRetryStrategy):
    """Fixed delay strategy.

    Returns the same delay for every retry attempt, regardless of the
    attempt number, optionally jittered by ±jitter_percent.

    Args:
        base_delay: The fixed delay in seconds (default: 1.0).
        with_jitter: Whether to randomize delays (default: False).
        jitter_percent: The jitter range as a fraction of the delay
            (default: 0.2).

    Example:
        ```pycon
        >>> from aretry.strategies import FixedDelayStrategy
        >>> strategy = FixedDelayStrategy(base_delay=2.5)
        >>> strategy.delay(0)
        2.5
        >>> strategy.delay(10)
        2.5

        ```
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        with_jitter: bool = False,
        jitter_percent: float = 0.2,
    ) -> None:
        validate_delay_params(base_delay)
        validate_jitter_percent(jitter_percent)
        self.base_delay = base_delay
        self.with_jitter = with_jitter
        self.jitter_percent = jitter_percent

    def delay(self, attempt: int) -> float:  # noqa: ARG002
        if self.with_jitter:
            return apply_jitter(self.base_delay, self.jitter_percent)
        return self.base_delay

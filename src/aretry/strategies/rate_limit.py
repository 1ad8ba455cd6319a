r"""Rate limiting decorator strategy."""

from __future__ import annotations

__all__ = ["RateLimitStrategy"]

import logging
import math
import time
from typing import TYPE_CHECKING, Any

from aretry.exceptions import StoreError
from aretry.store.memory import default_store
from aretry.strategies.base import BaseDecoratorStrategy

if TYPE_CHECKING:
    from aretry.store.base import BaseStore
    from aretry.strategies.base import BaseRetryStrategy

logger: logging.Logger = logging.getLogger(__name__)


class RateLimitStrategy(BaseDecoratorStrategy):
    r"""Limit the number of retries per time window.

    Retries are counted in fixed windows of ``time_window`` seconds per
    key, in a key/value store shared by every strategy using the same
    key. Once a window holds ``max_attempts`` retries, further retries
    are denied until the next window starts.

    Once usage reaches ``penalty_threshold * max_attempts``, ``delay``
    adds ``usage_ratio * time_window * penalty_factor`` seconds to the
    inner delay to slow callers down before the budget runs out.

    Args:
        inner: The wrapped strategy.
        max_attempts: The retry budget per window. Must be > 0.
        time_window: The window length in seconds. Must be > 0.
        key: The identifier of the budget in the store.
        store: The key/value store holding the counters. Defaults to
            the process-wide in-memory store.
        prefix: The prefix of the store keys.
        penalty_threshold: The usage ratio from which the delay penalty
            applies, in [0, 1].
        penalty_factor: The fraction of the window used as penalty at
            full usage. Must be >= 0.
        fail_open: Whether to allow retries when the store is
            unreachable. Default is True.

    Example:
        ```pycon
        >>> from aretry.store import InMemoryStore
        >>> from aretry.strategies import FixedDelayStrategy, RateLimitStrategy
        >>> strategy = RateLimitStrategy(
        ...     FixedDelayStrategy(base_delay=1.0),
        ...     max_attempts=2,
        ...     time_window=60.0,
        ...     store=InMemoryStore(),
        ... )
        >>> strategy.should_retry(0, 10)
        True
        >>> strategy.should_retry(1, 10)
        True
        >>> strategy.should_retry(2, 10)
        False
        >>> strategy.remaining_attempts()
        0

        ```
    """

    def __init__(
        self,
        inner: BaseRetryStrategy,
        max_attempts: int = 100,
        time_window: float = 60.0,
        key: str = "default",
        store: BaseStore | None = None,
        prefix: str = "rate_limit:",
        penalty_threshold: float = 0.8,
        penalty_factor: float = 0.1,
        fail_open: bool = True,
    ) -> None:
        super().__init__(inner)
        if max_attempts <= 0:
            msg = f"max_attempts must be > 0, got {max_attempts}"
            raise ValueError(msg)
        if time_window <= 0:
            msg = f"time_window must be > 0, got {time_window}"
            raise ValueError(msg)
        if not 0.0 <= penalty_threshold <= 1.0:
            msg = f"penalty_threshold must be between 0 and 1, got {penalty_threshold}"
            raise ValueError(msg)
        if penalty_factor < 0:
            msg = f"penalty_factor must be non-negative, got {penalty_factor}"
            raise ValueError(msg)

        self.max_attempts = max_attempts
        self.time_window = time_window
        self.key = key
        self.prefix = prefix
        self.penalty_threshold = penalty_threshold
        self.penalty_factor = penalty_factor
        self.fail_open = fail_open
        self._store = store if store is not None else default_store()

    @property
    def store(self) -> BaseStore:
        return self._store

    def _window(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return math.floor(now / self.time_window)

    def _window_key(self, window: int | None = None) -> str:
        window = self._window() if window is None else window
        return f"{self.prefix}{self.key}:{window}"

    def current_rate(self) -> int:
        """Return the number of retries recorded in the current window."""
        key = self._window_key()
        value = self._store.get(key)
        try:
            return int(value or 0)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid counter stored under {key!r}: {value!r}"
            raise StoreError(msg, key=key) from exc

    def remaining_attempts(self) -> int:
        """Return the number of retries left in the current window."""
        return max(0, self.max_attempts - self.current_rate())

    def time_until_reset(self) -> float:
        """Return the number of seconds until the current window ends."""
        now = time.time()
        return (self._window(now) + 1) * self.time_window - now

    def info(self) -> dict[str, Any]:
        """Return a summary of the current window.

        Returns:
            A dictionary with the key, the limits, the current usage and
            the time until the window resets.
        """
        current = self.current_rate()
        return {
            "key": self.key,
            "max_attempts": self.max_attempts,
            "time_window": self.time_window,
            "current_rate": current,
            "remaining_attempts": max(0, self.max_attempts - current),
            "usage_ratio": current / self.max_attempts,
            "time_until_reset": self.time_until_reset(),
        }

    def reset(self) -> None:
        """Forget the retries recorded in the current window."""
        self._store.forget(self._window_key())
        logger.debug(f"Rate limit {self.key!r} reset")

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        if not self.inner.should_retry(attempt, max_attempts, last_error):
            return False
        try:
            return self._try_acquire()
        except StoreError as exc:
            if self.fail_open:
                logger.warning(f"Rate limit store unavailable for {self.key!r}, allowing retry: {exc}")
                return True
            logger.warning(f"Rate limit store unavailable for {self.key!r}, denying retry: {exc}")
            return False

    def delay(self, attempt: int) -> float:
        delay = self.inner.delay(attempt)
        try:
            current = self.current_rate()
        except StoreError as exc:
            logger.warning(f"Rate limit store unavailable for {self.key!r}, no delay penalty: {exc}")
            return delay
        if current < self.penalty_threshold * self.max_attempts:
            return delay
        penalty = (current / self.max_attempts) * self.time_window * self.penalty_factor
        logger.debug(
            f"Rate limit {self.key!r} at {current}/{self.max_attempts}, "
            f"adding {penalty:.2f}s penalty"
        )
        return delay + penalty

    def _try_acquire(self) -> bool:
        key = self._window_key()
        if self.current_rate() >= self.max_attempts:
            logger.debug(f"Rate limit {self.key!r} exhausted ({self.max_attempts} per {self.time_window}s)")
            return False
        # The counter expires with its window.
        count = self._store.increment(key, ttl=self.time_window)
        if count is None:
            # Not atomic: concurrent writers may under-count attempts.
            value = self._store.get(key)
            self._store.put(key, int(value or 0) + 1, ttl=self.time_window)
        return True

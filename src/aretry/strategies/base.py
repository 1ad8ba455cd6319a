r"""Abstract base classes for retry strategies."""

from __future__ import annotations

__all__ = ["BaseDecoratorStrategy", "BaseRetryStrategy"]

from abc import ABC, abstractmethod


class BaseRetryStrategy(ABC):
    """Abstract base class for retry strategies.

    A retry strategy answers two questions for the retry executor: how
    long to wait before the next attempt, and whether another attempt
    should be made at all. Every strategy owns its base delay as
    constructor state, so ``delay`` only needs the attempt number.
    """

    @abstractmethod
    def delay(self, attempt: int) -> float:
        """Calculate the delay before the next attempt.

        Args:
            attempt: The attempt that just failed (0-indexed). For
                example, attempt=0 is the initial attempt, so its delay
                is the wait before the first retry.

        Returns:
            The delay in seconds. Never negative.
        """

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,  # noqa: ARG002
    ) -> bool:
        """Decide whether another attempt should be made.

        Args:
            attempt: The attempt that just completed (0-indexed).
            max_attempts: The maximum number of retries allowed.
            last_error: The error raised by the last attempt, or
                ``None`` if it succeeded.

        Returns:
            ``True`` if ``attempt < max_attempts``.
        """
        return attempt < max_attempts

    def record_success(self) -> None:
        """Hook called by the retry executor after an attempt succeeded.

        Stateful strategies use it to apply the success outcome without
        waiting for the next ``should_retry`` call. The default does
        nothing.
        """

    def __repr__(self) -> str:
        params = ", ".join(f"{key}={value!r}" for key, value in vars(self).items() if not key.startswith("_"))
        return f"{type(self).__qualname__}({params})"


class BaseDecoratorStrategy(BaseRetryStrategy):
    """Base class for strategies that wrap another strategy.

    A decorator owns exactly one inner strategy. By default both
    ``delay`` and ``should_retry`` delegate to it; subclasses veto,
    adjust or override its answers.

    Args:
        inner: The wrapped strategy.
    """

    def __init__(self, inner: BaseRetryStrategy) -> None:
        if not isinstance(inner, BaseRetryStrategy):
            msg = f"inner must be a BaseRetryStrategy, got {type(inner).__qualname__}"
            raise TypeError(msg)
        self.inner = inner

    def delay(self, attempt: int) -> float:
        return self.inner.delay(attempt)

    def should_retry(
        self,
        attempt: int,
        max_attempts: int,
        last_error: BaseException | None = None,
    ) -> bool:
        return self.inner.should_retry(attempt, max_attempts, last_error)

    def record_success(self) -> None:
        self.inner.record_success()

r"""Exceptions raised by the aretry package.

Operation failures are never raised by the retry executor itself: they
are captured in a ``RetryResult``. The exceptions defined here signal
problems with the engine's own collaborators (stores, strategy
resolution, handler loading).
"""

from __future__ import annotations

__all__ = [
    "HandlerLoadError",
    "MaxRetriesExceededError",
    "RetryError",
    "StoreError",
    "StrategyResolutionError",
]


class RetryError(Exception):
    """Base class for all exceptions raised by aretry."""


class StoreError(RetryError):
    """Exception raised when a key/value store cannot be used.

    Args:
        message: A descriptive error message.
        key: The key involved in the failing store operation, if any.

    Example:
        ```pycon
        >>> from aretry.exceptions import StoreError
        >>> error = StoreError("store unreachable", key="circuit:api")
        >>> error.key
        'circuit:api'

        ```
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class StrategyResolutionError(RetryError, ValueError):
    """Exception raised when a strategy identifier cannot be resolved.

    Example:
        ```pycon
        >>> from aretry.exceptions import StrategyResolutionError
        >>> raise StrategyResolutionError("Invalid strategy alias 'nope'")
        Traceback (most recent call last):
            ...
        aretry.exceptions.StrategyResolutionError: Invalid strategy alias 'nope'

        ```
    """


class HandlerLoadError(RetryError, ImportError):
    """Exception raised when an exception handler cannot be loaded."""


class MaxRetriesExceededError(RetryError):
    """Exception raised when a run ends without any recorded error.

    Args:
        max_retries: The configured maximum number of retries.
    """

    def __init__(self, max_retries: int) -> None:
        super().__init__(f"Operation failed after {max_retries + 1} attempts")
        self.max_retries = max_retries

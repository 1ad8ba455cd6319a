r"""Parameter validation utilities for retry configuration and
strategies.

This module provides validation functions to ensure parameters meet
the required constraints before they are used by the retry executor
or by the delay strategies.
"""

from __future__ import annotations

__all__ = ["validate_delay_params", "validate_jitter_percent", "validate_retry_params"]


def validate_retry_params(
    max_retries: int,
    delay: float = 0.0,
    timeout: float | None = None,
    total_timeout: float | None = None,
) -> None:
    """Validate retry parameters.

    Args:
        max_retries: Maximum number of retry attempts. Must be >= 0.
            A value of 0 means no retries (only the initial attempt).
        delay: Default base delay in seconds. Must be >= 0.
        timeout: Advisory per-attempt timeout in seconds. Must be > 0
            if provided.
        total_timeout: Total time budget in seconds for all attempts.
            Must be > 0 if provided.

    Raises:
        ValueError: If any parameter is out of range.

    Example:
        ```pycon
        >>> from aretry.utils.validation import validate_retry_params
        >>> validate_retry_params(max_retries=3)
        >>> validate_retry_params(max_retries=3, delay=0.5, total_timeout=30.0)
        >>> validate_retry_params(max_retries=-1)
        Traceback (most recent call last):
            ...
        ValueError: max_retries must be >= 0, got -1

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if delay < 0:
        msg = f"delay must be >= 0, got {delay}"
        raise ValueError(msg)
    if timeout is not None and timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)
    if total_timeout is not None and total_timeout <= 0:
        msg = f"total_timeout must be > 0, got {total_timeout}"
        raise ValueError(msg)


def validate_delay_params(base_delay: float, max_delay: float | None = None) -> None:
    """Validate the delay parameters shared by the backoff strategies.

    Args:
        base_delay: The base delay in seconds. Must be >= 0.
        max_delay: Optional maximum delay cap in seconds. Must be > 0
            if provided.

    Raises:
        ValueError: If ``base_delay`` is negative or ``max_delay`` is
            non-positive.

    Example:
        ```pycon
        >>> from aretry.utils.validation import validate_delay_params
        >>> validate_delay_params(1.0, max_delay=10.0)
        >>> validate_delay_params(-1.0)
        Traceback (most recent call last):
            ...
        ValueError: base_delay must be non-negative, got -1.0

        ```
    """
    if base_delay < 0:
        msg = f"base_delay must be non-negative, got {base_delay}"
        raise ValueError(msg)
    if max_delay is not None and max_delay <= 0:
        msg = f"max_delay must be positive if specified, got {max_delay}"
        raise ValueError(msg)


def validate_jitter_percent(jitter_percent: float) -> None:
    """Validate a jitter percentage.

    Args:
        jitter_percent: Fraction of the delay used as jitter range.
            Must be in ``[0, 1]``.

    Raises:
        ValueError: If ``jitter_percent`` is outside ``[0, 1]``.
    """
    if not 0 <= jitter_percent <= 1:
        msg = f"jitter_percent must be in [0, 1], got {jitter_percent}"
        raise ValueError(msg)

r"""Jitter utilities used by the delay strategies."""

from __future__ import annotations

__all__ = ["apply_jitter", "scale_jitter"]

import logging
import random

logger: logging.Logger = logging.getLogger(__name__)


def apply_jitter(delay: float, jitter_percent: float) -> float:
    """Perturb a delay uniformly within ``±jitter_percent``.

    The jittered delay is ``delay + uniform(-1, 1) * delay * jitter_percent``
    and is never negative.

    Args:
        delay: The delay in seconds.
        jitter_percent: The jitter range as a fraction of the delay.

    Returns:
        The jittered delay in seconds.

    Example:
        ```pycon
        >>> from aretry.utils.jitter import apply_jitter
        >>> 0.8 <= apply_jitter(1.0, 0.2) <= 1.2
        True
        >>> apply_jitter(1.0, 0.0)
        1.0

        ```
    """
    if jitter_percent <= 0:
        return delay
    jitter = random.uniform(-1.0, 1.0) * delay * jitter_percent  # noqa: S311
    logger.debug(f"Applying jitter {jitter:.3f}s to delay {delay:.3f}s")
    return max(0.0, delay + jitter)


def scale_jitter(delay: float, low: float = 0.8, high: float = 1.2) -> float:
    """Multiply a delay by a random factor in ``[low, high]``.

    Example:
        ```pycon
        >>> from aretry.utils.jitter import scale_jitter
        >>> 8.0 <= scale_jitter(10.0) <= 12.0
        True

        ```
    """
    return max(0.0, delay * random.uniform(low, high))  # noqa: S311

r"""Abstract base class for key/value stores."""

from __future__ import annotations

__all__ = ["BaseStore"]

from abc import ABC, abstractmethod
from typing import Any


class BaseStore(ABC):
    """Abstract base class for the key/value stores shared by stateful
    strategies.

    The circuit breaker and rate limiter strategies persist their
    counters in a store keyed by an explicit identifier, so independent
    executors (threads or processes) using the same key and the same
    backing service share state.

    Implementations raise ``aretry.exceptions.StoreError`` when the
    backing service cannot be reached.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under ``key``, or ``None`` if absent
        or expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``.

        Args:
            key: The key.
            value: A JSON-serializable value.
            ttl: Optional time to live in seconds. ``None`` means the
                value never expires.
        """

    @abstractmethod
    def increment(self, key: str, ttl: float | None = None) -> int | None:
        """Atomically increment the integer stored under ``key``.

        A missing key is treated as ``0``.

        Args:
            key: The key.
            ttl: Optional time to live in seconds, applied when the
                increment creates the key. An existing key keeps its
                expiry.

        Returns:
            The incremented value, or ``None`` if the store has no
            atomic increment primitive. Callers then fall back to a
            non-atomic ``get``/``put`` sequence, which may under-count
            under concurrent writers.
        """

    @abstractmethod
    def forget(self, key: str) -> None:
        """Remove ``key`` from the store. Missing keys are ignored."""

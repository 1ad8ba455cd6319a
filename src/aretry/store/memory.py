r"""In-memory key/value store."""

from __future__ import annotations

__all__ = ["InMemoryStore", "default_store"]

import copy
import logging
import threading
import time
from typing import Any

from aretry.store.base import BaseStore

logger: logging.Logger = logging.getLogger(__name__)


class InMemoryStore(BaseStore):
    """Thread-safe in-memory store with optional expiry.

    State is shared by every strategy holding a reference to the same
    instance. Values are deep-copied on the way in and out, so callers
    never share mutable state with the store.

    Example:
        ```pycon
        >>> from aretry.store import InMemoryStore
        >>> store = InMemoryStore()
        >>> store.increment("hits")
        1
        >>> store.increment("hits")
        2
        >>> store.put("state", {"state": "open"}, ttl=60)
        >>> store.get("state")
        {'state': 'open'}
        >>> store.forget("state")
        >>> store.get("state") is None
        True

        ```
    """

    def __init__(self) -> None:
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._data)

    def _purge_expired(self, now: float | None = None) -> None:
        """Drop expired entries. Must be called with the lock held."""
        now = time.monotonic() if now is None else now
        expired = [key for key, (_, expires_at) in self._data.items() if _is_expired(expires_at, now)]
        for key in expired:
            del self._data[key]

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if _is_expired(expires_at, time.monotonic()):
                del self._data[key]
                return None
            return copy.deepcopy(value)

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = time.monotonic()
        expires_at = None if ttl is None else now + ttl
        with self._lock:
            self._purge_expired(now)
            self._data[key] = (copy.deepcopy(value), expires_at)

    def increment(self, key: str, ttl: float | None = None) -> int:
        now = time.monotonic()
        with self._lock:
            self._purge_expired(now)
            value, expires_at = self._data.get(key, (0, None))
            if key not in self._data and ttl is not None:
                expires_at = now + ttl
            value = int(value) + 1
            self._data[key] = (value, expires_at)
            return value

    def forget(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        """Remove every key from the store."""
        with self._lock:
            self._data.clear()
        logger.debug("In-memory store cleared")


def _is_expired(expires_at: float | None, now: float) -> bool:
    return expires_at is not None and now >= expires_at


_DEFAULT_STORE = InMemoryStore()


def default_store() -> InMemoryStore:
    """Return the process-wide store used when a strategy is created
    without an explicit store.

    Strategies built with the same key in the same process therefore
    share state by default.
    """
    return _DEFAULT_STORE

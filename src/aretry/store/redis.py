r"""Redis implementation of the key/value store.

Use this store to share circuit breaker and rate limiter state between
processes or hosts.

Example:
    ```pycon
    >>> from aretry.store.redis import RedisStore
    >>> from aretry.strategies import CircuitBreakerStrategy, ExponentialBackoffStrategy
    >>> store = RedisStore("redis://localhost:6379/0")  # doctest: +SKIP
    >>> strategy = CircuitBreakerStrategy(
    ...     ExponentialBackoffStrategy(), key="payments-api", store=store
    ... )  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = ["RedisStore"]

import json
import logging
import math
from typing import Any

import redis

from aretry.exceptions import StoreError
from aretry.store.base import BaseStore

logger: logging.Logger = logging.getLogger(__name__)


class RedisStore(BaseStore):
    """Store backed by a Redis server.

    Values are serialized as JSON. Counters use ``INCR`` so concurrent
    writers never lose increments. Every ``redis.RedisError`` is
    re-raised as ``StoreError`` so strategies can apply their
    fail-open/fail-closed policy.

    Args:
        url: Redis connection URL. Ignored when ``client`` is given.
        client: Optional pre-configured ``redis.Redis`` client.
        prefix: Prefix prepended to every key.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: redis.Redis | None = None,
        prefix: str = "aretry:",
    ) -> None:
        self._url = url
        self._client = client
        self._prefix = prefix

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(self._url)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._get_client().get(self._key(key))
        except redis.RedisError as exc:
            msg = f"Unable to read key {key!r} from Redis: {exc}"
            raise StoreError(msg, key=key) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            msg = f"Invalid JSON stored under key {key!r}"
            raise StoreError(msg, key=key) from exc

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        encoded = json.dumps(value)
        try:
            if ttl is None:
                self._get_client().set(self._key(key), encoded)
            else:
                self._get_client().set(self._key(key), encoded, px=_milliseconds(ttl))
        except redis.RedisError as exc:
            msg = f"Unable to write key {key!r} to Redis: {exc}"
            raise StoreError(msg, key=key) from exc

    def increment(self, key: str, ttl: float | None = None) -> int:
        try:
            count = int(self._get_client().incr(self._key(key)))
            if count == 1 and ttl is not None:
                self._get_client().pexpire(self._key(key), _milliseconds(ttl))
        except redis.RedisError as exc:
            msg = f"Unable to increment key {key!r} in Redis: {exc}"
            raise StoreError(msg, key=key) from exc
        return count

    def forget(self, key: str) -> None:
        try:
            self._get_client().delete(self._key(key))
        except redis.RedisError as exc:
            msg = f"Unable to delete key {key!r} from Redis: {exc}"
            raise StoreError(msg, key=key) from exc

    def close(self) -> None:
        """Close the underlying Redis connection pool."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Redis store connection closed")


def _milliseconds(ttl: float) -> int:
    # Redis expiries are whole milliseconds and must be positive.
    return max(1, math.ceil(ttl * 1000))

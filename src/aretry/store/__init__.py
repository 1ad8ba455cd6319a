r"""Key/value stores for state shared between retry strategies.

``RedisStore`` is importable from ``aretry.store.redis``; it is not
re-exported here so that importing the package does not require a
Redis connection.
"""

from __future__ import annotations

__all__ = ["BaseStore", "InMemoryStore", "default_store"]

from aretry.store.base import BaseStore
from aretry.store.memory import InMemoryStore, default_store

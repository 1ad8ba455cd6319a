r"""Dead-letter queue for operations that exhausted their retries.

Failed ``RetryResult`` objects can be handed to a
``DeadLetterQueueHandler``, which logs them and stores an entry for
later inspection or reprocessing.

Example:
    ```pycon
    >>> from aretry.dead_letter import DeadLetterQueueHandler, InMemoryDeadLetterStorage
    >>> from aretry.retry import RetryResult
    >>> storage = InMemoryDeadLetterStorage()
    >>> handler = DeadLetterQueueHandler(storage, log_failures=False)
    >>> entry_id = handler.handle(RetryResult(error=TimeoutError("slow")), operation="sync-users")
    >>> [entry.error_class for entry in storage.retrieve()]
    ['TimeoutError']
    >>> handler.process_queue(lambda entry, entry_id: "replayed")[entry_id]["success"]
    True
    >>> storage.get(entry_id).status
    'processed'

    ```
"""

from __future__ import annotations

__all__ = [
    "BaseDeadLetterStorage",
    "DeadLetterEntry",
    "DeadLetterQueueHandler",
    "InMemoryDeadLetterStorage",
    "default_dead_letter_handler",
]

import itertools
import logging
import threading
import time
import traceback
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.retry.context import AttemptRecord
    from aretry.retry.result import RetryResult

logger: logging.Logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSED = "processed"
FAILED = "failed"


@dataclass
class DeadLetterEntry:
    """An entry of the dead-letter queue.

    Attributes:
        id: The identifier assigned by the storage.
        operation: A name describing the operation.
        error_message: The message of the final error.
        error_class: The qualified name of the final error's class.
        error_trace: The formatted traceback of the final error.
        exception_history: The records of the failed attempts. Storages
            that serialize entries return one dictionary per attempt.
        context: Extra information supplied by the caller.
        status: ``"pending"``, ``"processed"`` or ``"failed"``.
        created_at: The wall-clock time the entry was created.
        processed_at: The wall-clock time the entry was processed.
        processing_result: The value returned by the processor.
        processing_error: The message of the processor's error.
    """

    id: str = ""
    operation: str = ""
    error_message: str = ""
    error_class: str = ""
    error_trace: str = ""
    exception_history: list[AttemptRecord | dict[str, Any]] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)
    status: str = PENDING
    created_at: float = field(default_factory=time.time)
    processed_at: float | None = None
    processing_result: Any = None
    processing_error: str | None = None


class BaseDeadLetterStorage(ABC):
    """Abstract base class for dead-letter storages."""

    @abstractmethod
    def store(self, entry: DeadLetterEntry) -> str:
        """Store an entry and return its identifier."""

    @abstractmethod
    def retrieve(
        self,
        limit: int | None = 100,
        status: str | None = None,
        operation: str | None = None,
        created_before: float | None = None,
        created_after: float | None = None,
    ) -> list[DeadLetterEntry]:
        """Return matching entries, newest first."""

    @abstractmethod
    def get(self, entry_id: str) -> DeadLetterEntry | None:
        """Return an entry by identifier, or ``None``."""

    @abstractmethod
    def mark_processed(self, entry_id: str, result: Any = None) -> bool:
        """Mark an entry as processed. Returns whether it exists."""

    @abstractmethod
    def mark_failed(self, entry_id: str, error: str) -> bool:
        """Mark an entry as failed. Returns whether it exists."""

    @abstractmethod
    def delete(self, entry_id: str) -> bool:
        """Delete an entry. Returns whether it existed."""

    @abstractmethod
    def clear(self, **filters: Any) -> int:
        """Delete the entries matching the filters (all entries without
        filters) and return how many were deleted."""

    def count(self, **filters: Any) -> int:
        return len(self.retrieve(limit=None, **filters))


class InMemoryDeadLetterStorage(BaseDeadLetterStorage):
    """Thread-safe dead-letter storage kept in memory.

    Entries are returned as copies.
    """

    def __init__(self) -> None:
        self._entries: dict[str, DeadLetterEntry] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def store(self, entry: DeadLetterEntry) -> str:
        with self._lock:
            entry_id = str(next(self._ids))
            self._entries[entry_id] = replace(entry, id=entry_id, status=PENDING)
        return entry_id

    def retrieve(
        self,
        limit: int | None = 100,
        status: str | None = None,
        operation: str | None = None,
        created_before: float | None = None,
        created_after: float | None = None,
    ) -> list[DeadLetterEntry]:
        with self._lock:
            entries = [
                entry
                for entry in self._entries.values()
                if (status is None or entry.status == status)
                and (operation is None or entry.operation == operation)
                and (created_before is None or entry.created_at < created_before)
                and (created_after is None or entry.created_at > created_after)
            ]
        # Newest first, insertion order breaks ties.
        entries = sorted(
            enumerate(entries), key=lambda item: (item[1].created_at, item[0]), reverse=True
        )
        return [replace(entry) for _, entry in entries[:limit]]

    def get(self, entry_id: str) -> DeadLetterEntry | None:
        with self._lock:
            entry = self._entries.get(entry_id)
            return None if entry is None else replace(entry)

    def mark_processed(self, entry_id: str, result: Any = None) -> bool:
        return self._update(entry_id, PROCESSED, processing_result=result, processing_error=None)

    def mark_failed(self, entry_id: str, error: str) -> bool:
        return self._update(entry_id, FAILED, processing_result=None, processing_error=error)

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            return self._entries.pop(entry_id, None) is not None

    def clear(self, **filters: Any) -> int:
        if not filters:
            with self._lock:
                count = len(self._entries)
                self._entries.clear()
            return count
        entries = self.retrieve(limit=None, **filters)
        with self._lock:
            for entry in entries:
                self._entries.pop(entry.id, None)
        return len(entries)

    def _update(self, entry_id: str, status: str, **changes: Any) -> bool:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return False
            self._entries[entry_id] = replace(
                entry, status=status, processed_at=time.time(), **changes
            )
            return True


class DeadLetterQueueHandler:
    """Log and store failed results.

    Args:
        storage: The storage of the entries. Defaults to an in-memory
            storage.
        log_failures: Whether to log each failed result.
        log_level: The level name used to log failures.
        handler: Optional callable receiving ``(result, operation,
            context)`` before the entry is stored.

    Raises:
        ValueError: If ``log_level`` is not a logging level name.
    """

    def __init__(
        self,
        storage: BaseDeadLetterStorage | None = None,
        log_failures: bool = True,
        log_level: str = "warning",
        handler: Callable[[RetryResult, str, dict[str, Any]], None] | None = None,
    ) -> None:
        self.storage = storage if storage is not None else InMemoryDeadLetterStorage()
        self.log_failures = log_failures
        self.log_level = _to_level(log_level)
        self.handler = handler

    def with_handler(
        self, handler: Callable[[RetryResult, str, dict[str, Any]], None]
    ) -> DeadLetterQueueHandler:
        self.handler = handler
        return self

    def handle(
        self,
        result: RetryResult,
        operation: str = "",
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """Store a failed result.

        Args:
            result: The result. Successful results are ignored.
            operation: A name describing the operation.
            context: Extra information stored with the entry.

        Returns:
            The identifier of the entry, or ``None`` for successful
            results.
        """
        error = result.error
        if error is None:
            return None
        context = dict(context or {})
        history = result.exception_history

        if self.log_failures:
            logger.log(
                self.log_level,
                f"Retry operation failed after {len(history)} attempts: "
                f"{operation or 'Unnamed operation'}. Error: {error}",
            )
        if self.handler is not None:
            self.handler(result, operation, context)

        return self.storage.store(
            DeadLetterEntry(
                operation=operation,
                error_message=str(error),
                error_class=_qualified_name(type(error)),
                error_trace="".join(traceback.format_exception(type(error), error, error.__traceback__)),
                exception_history=history,
                context=context,
            )
        )

    def process_queue(
        self,
        processor: Callable[[DeadLetterEntry, str], Any],
        limit: int = 100,
        **filters: Any,
    ) -> dict[str, dict[str, Any]]:
        """Process pending entries.

        Entries are marked processed when the processor returns and
        failed when it raises. Processor errors are logged, never raised.

        Args:
            processor: Receives ``(entry, entry_id)``.
            limit: The maximum number of entries to process.
            **filters: Filters passed to ``storage.retrieve``. Defaults to
                ``status="pending"``.

        Returns:
            A mapping from entry identifier to ``{"success": bool,
            "result": ...}`` or ``{"success": False, "error": str}``.
        """
        filters.setdefault("status", PENDING)
        results: dict[str, dict[str, Any]] = {}
        for entry in self.storage.retrieve(limit=limit, **filters):
            try:
                outcome = processor(entry, entry.id)
            except Exception as exc:  # noqa: BLE001
                self.storage.mark_failed(entry.id, str(exc))
                results[entry.id] = {"success": False, "error": str(exc)}
                if self.log_failures:
                    logger.error(f"Failed to process dead letter queue item {entry.id}: {exc}")
            else:
                self.storage.mark_processed(entry.id, outcome)
                results[entry.id] = {"success": True, "result": outcome}
        return results


def _qualified_name(cls: type) -> str:
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _to_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        msg = f"log_level must be a logging level name, got {level!r}"
        raise ValueError(msg)
    return value


_DEFAULT_HANDLER: DeadLetterQueueHandler | None = None
_DEFAULT_HANDLER_LOCK = threading.Lock()


def default_dead_letter_handler() -> DeadLetterQueueHandler:
    """Return the process-wide handler used by
    ``RetryResult.to_dead_letter_queue`` when none is given."""
    global _DEFAULT_HANDLER  # noqa: PLW0603
    with _DEFAULT_HANDLER_LOCK:
        if _DEFAULT_HANDLER is None:
            _DEFAULT_HANDLER = DeadLetterQueueHandler()
        return _DEFAULT_HANDLER

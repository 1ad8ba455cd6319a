r"""Structured logging utilities for retry operations.

This module provides an opt-in JSON formatter and helpers to attach the
identifier of the running retry operation to every log record. The retry
executor enters ``operation_scope`` for the duration of each run, so log
records emitted by strategies, stores and user code during the run can be
correlated.

Example:
    Enable structured logging for aretry:

    ```python
    import logging
    from aretry.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("aretry")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_operation_id",
    "get_operation_id",
    "log_structured",
    "operation_scope",
    "set_operation_id",
]

import contextvars
import json
import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

_operation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "aretry_operation_id", default=None
)

# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_ATTRIBUTES = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "msecs",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "sinfo",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


def get_operation_id() -> str | None:
    """Get the identifier of the retry operation running in this
    context.

    Example:
        ```pycon
        >>> from aretry.utils.structured_logging import get_operation_id, operation_scope
        >>> with operation_scope("retry_123"):
        ...     get_operation_id()
        ...
        'retry_123'

        ```
    """
    return _operation_id.get()


def set_operation_id(operation_id: str) -> None:
    """Set the operation identifier for the current context."""
    _operation_id.set(operation_id)


def clear_operation_id() -> None:
    """Clear the operation identifier for the current context."""
    _operation_id.set(None)


@contextmanager
def operation_scope(operation_id: str) -> Generator[str, None, None]:
    """Bind ``operation_id`` to the current context for the duration of
    the block.

    The previous value is restored on exit, so scopes can be nested.

    Args:
        operation_id: The identifier of the retry operation.

    Yields:
        The bound operation identifier.
    """
    token = _operation_id.set(operation_id)
    try:
        yield operation_id
    finally:
        _operation_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Standard fields in the JSON output are ``timestamp``, ``level``,
    ``logger``, ``message``, ``module``, ``function`` and ``line``. The
    ``operation_id`` field is added when a retry operation is running,
    and any field passed through ``extra`` is included as well.

    Example:
        ```pycon
        >>> import json
        >>> import logging
        >>> from io import StringIO
        >>> from aretry.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("aretry.doctest")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("Attempt failed", extra={"attempt": 1})
        >>> json.loads(stream.getvalue())["attempt"]
        1

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        operation_id = get_operation_id()
        if operation_id is not None:
            log_data["operation_id"] = operation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002, N802
        """Format the record timestamp as ISO 8601 with milliseconds."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_structured(logger: logging.Logger, level: int, message: str, **extra: Any) -> None:
    """Log a message with structured fields.

    Args:
        logger: Logger to use.
        level: Log level (e.g., ``logging.INFO``).
        message: Log message.
        **extra: Additional structured fields to include in the record.
    """
    logger.log(level, message, extra=extra)

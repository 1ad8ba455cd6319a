r"""Per-run record of attempts, timing metrics and metadata."""

from __future__ import annotations

__all__ = ["AttemptRecord", "RetryContext"]

import time
import uuid
from dataclasses import dataclass, fields
from typing import Any


@dataclass(frozen=True)
class AttemptRecord:
    """Record of a failed attempt.

    Attributes:
        attempt: The attempt number (0-indexed).
        exception: The exception raised by the attempt.
        was_retryable: Whether the exception was classified retryable.
        delay: The delay in seconds that preceded this attempt.
        duration: The duration of the attempt in seconds.
        timestamp: The wall-clock time the attempt failed.
    """

    attempt: int
    exception: BaseException
    was_retryable: bool
    delay: float
    duration: float
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class RetryContext:
    r"""Mutable record of one run of the retry executor.

    Every attempt is recorded with its duration. Failed attempts also
    record the exception, whether it was retryable and the delay that
    preceded them. Accessors return copies, so callers can never change
    the recorded state.

    Args:
        max_retries: The maximum number of retries of the run.
        operation_id: The identifier of the run. A unique identifier is
            generated when omitted.

    Example:
        ```pycon
        >>> from aretry.retry import RetryContext
        >>> context = RetryContext(max_retries=3, operation_id="op-1")
        >>> context.record_attempt(0, duration=0.5, error=TimeoutError("slow"), was_retryable=True)
        >>> context.record_delay(1.0)
        >>> context.record_attempt(1, duration=0.25)
        >>> context.total_attempts
        2
        >>> metrics = context.metrics()
        >>> metrics["total_duration"], metrics["total_delay"], metrics["total_elapsed_time"]
        (0.75, 1.0, 1.75)

        ```
    """

    def __init__(self, max_retries: int, operation_id: str | None = None) -> None:
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ValueError(msg)
        self.max_retries = max_retries
        self.operation_id = operation_id or f"retry_{uuid.uuid4().hex}"
        self.start_time = time.time()
        self._records: list[AttemptRecord] = []
        self._durations: list[float] = []
        self._delays: list[float] = []
        self._metadata: dict[str, Any] = {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__qualname__}(operation_id={self.operation_id!r}, "
            f"max_retries={self.max_retries}, attempts={self.total_attempts})"
        )

    def record_attempt(
        self,
        attempt: int,
        duration: float,
        error: BaseException | None = None,
        was_retryable: bool = False,
        delay: float = 0.0,
    ) -> None:
        """Record an attempt.

        Args:
            attempt: The attempt number (0-indexed).
            duration: The duration of the attempt in seconds.
            error: The exception raised by the attempt, or ``None`` if it
                succeeded.
            was_retryable: Whether the exception was classified
                retryable.
            delay: The delay in seconds that preceded the attempt.
        """
        self._durations.append(max(0.0, duration))
        if error is not None:
            self._records.append(
                AttemptRecord(
                    attempt=attempt,
                    exception=error,
                    was_retryable=was_retryable,
                    delay=delay,
                    duration=max(0.0, duration),
                    timestamp=time.time(),
                )
            )

    def record_delay(self, delay: float) -> None:
        """Record a delay spent waiting between attempts."""
        self._delays.append(max(0.0, delay))

    def add_metadata(self, **metadata: Any) -> None:
        self._metadata.update(metadata)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    def metadata_value(self, key: str, default: Any = None) -> Any:
        return self._metadata.get(key, default)

    @property
    def exception_history(self) -> list[AttemptRecord]:
        return list(self._records)

    @property
    def exception_count(self) -> int:
        return len(self._records)

    @property
    def retryable_exception_count(self) -> int:
        return sum(1 for record in self._records if record.was_retryable)

    @property
    def total_attempts(self) -> int:
        """The number of recorded attempts, successful or not."""
        return len(self._durations)

    @property
    def total_delay(self) -> float:
        return sum(self._delays, 0.0)

    def metrics(self) -> dict[str, float]:
        """Return the timing metrics of the run.

        Returns:
            A dictionary with ``total_duration`` (sum of the attempt
            durations), ``average_attempt_duration``,
            ``min_attempt_duration``, ``max_attempt_duration``,
            ``total_delay`` (sum of the waits between attempts) and
            ``total_elapsed_time`` (durations plus delays).
        """
        total_duration = sum(self._durations, 0.0)
        count = len(self._durations)
        total_delay = self.total_delay
        return {
            "total_duration": total_duration,
            "average_attempt_duration": total_duration / count if count else 0.0,
            "min_attempt_duration": min(self._durations, default=0.0),
            "max_attempt_duration": max(self._durations, default=0.0),
            "total_delay": total_delay,
            "total_elapsed_time": total_duration + total_delay,
        }

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the whole context."""
        return {
            "operation_id": self.operation_id,
            "max_retries": self.max_retries,
            "start_time": self.start_time,
            "total_attempts": self.total_attempts,
            "exception_history": self.exception_history,
            "metadata": self.metadata,
            "metrics": self.metrics(),
        }

    def summary(self) -> dict[str, Any]:
        """Return a summary of the run suitable for logging."""
        return {
            "operation_id": self.operation_id,
            "total_attempts": self.total_attempts,
            "max_retries": self.max_retries,
            "total_exceptions": self.exception_count,
            "retryable_exceptions": self.retryable_exception_count,
            "metrics": self.metrics(),
            "metadata": self.metadata,
        }

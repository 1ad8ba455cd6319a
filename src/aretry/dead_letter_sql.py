r"""Dead-letter storage persisted in a SQL database with SQLAlchemy.

Entries live in the ``retry_dead_letters`` table, so they survive process
restarts and can be processed by another worker. Exception histories,
contexts and processing results are stored as JSON. Exceptions cannot be
serialized, so the history of a stored entry comes back as a list of
dictionaries describing each failed attempt.

Example:
    ```pycon
    >>> from aretry.dead_letter import DeadLetterQueueHandler
    >>> from aretry.dead_letter_sql import SQLDeadLetterStorage
    >>> from aretry.retry import RetryResult
    >>> storage = SQLDeadLetterStorage("sqlite://")
    >>> handler = DeadLetterQueueHandler(storage, log_failures=False)
    >>> entry_id = handler.handle(RetryResult(error=TimeoutError("slow")), operation="sync-users")
    >>> storage.get(entry_id).error_message
    'slow'
    >>> storage.count(status="pending")
    1

    ```
"""

from __future__ import annotations

__all__ = ["DeadLetterBase", "DeadLetterRecord", "SQLDeadLetterStorage"]

import json
import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from aretry.dead_letter import (
    FAILED,
    PENDING,
    PROCESSED,
    BaseDeadLetterStorage,
    DeadLetterEntry,
)
from aretry.exceptions import StoreError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

    from aretry.retry.context import AttemptRecord

logger: logging.Logger = logging.getLogger(__name__)


class DeadLetterBase(DeclarativeBase):
    """Declarative base of the dead-letter tables."""


class DeadLetterRecord(DeadLetterBase):
    """Row of the ``retry_dead_letters`` table."""

    __tablename__ = "retry_dead_letters"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    operation: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="", index=True)
    error_message: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    error_class: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    error_trace: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    exception_history: Mapped[list[dict[str, Any]]] = mapped_column(
        sa.JSON, nullable=False, default=list
    )
    context: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, default=PENDING, index=True)
    created_at: Mapped[float] = mapped_column(sa.Float, nullable=False, index=True)
    processed_at: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    processing_result: Mapped[Any] = mapped_column(sa.JSON, nullable=True)
    processing_error: Mapped[str | None] = mapped_column(sa.Text, nullable=True)


class SQLDeadLetterStorage(BaseDeadLetterStorage):
    """Dead-letter storage backed by a SQL database.

    Args:
        engine: A SQLAlchemy engine or a database URL.
        create_tables: Whether to create the ``retry_dead_letters`` table
            when it does not exist.

    Raises:
        StoreError: If the database cannot be reached.
    """

    def __init__(self, engine: sa.Engine | str, create_tables: bool = True) -> None:
        self.engine = sa.create_engine(engine) if isinstance(engine, str) else engine
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            self.create_tables()

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}(url={self.engine.url!r})"

    def create_tables(self) -> None:
        """Create the dead-letter table and its indexes if missing."""
        try:
            DeadLetterBase.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            msg = f"Unable to create the dead letter tables: {exc}"
            raise StoreError(msg) from exc
        logger.debug(f"Dead letter tables ready on {self.engine.url!r}")

    def drop_tables(self) -> None:
        """Drop the dead-letter table."""
        try:
            DeadLetterBase.metadata.drop_all(self.engine)
        except SQLAlchemyError as exc:
            msg = f"Unable to drop the dead letter tables: {exc}"
            raise StoreError(msg) from exc

    def store(self, entry: DeadLetterEntry) -> str:
        record = DeadLetterRecord(
            operation=entry.operation,
            error_message=entry.error_message,
            error_class=entry.error_class,
            error_trace=entry.error_trace,
            exception_history=[_summarize(record) for record in entry.exception_history],
            context=_to_json(entry.context),
            status=PENDING,
            created_at=entry.created_at,
        )
        with self._session() as session:
            session.add(record)
            session.commit()
            return str(record.id)

    def retrieve(
        self,
        limit: int | None = 100,
        status: str | None = None,
        operation: str | None = None,
        created_before: float | None = None,
        created_after: float | None = None,
    ) -> list[DeadLetterEntry]:
        stmt = (
            sa.select(DeadLetterRecord)
            .where(*_conditions(status, operation, created_before, created_after))
            .order_by(DeadLetterRecord.created_at.desc(), DeadLetterRecord.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [_to_entry(record) for record in session.scalars(stmt).all()]

    def get(self, entry_id: str) -> DeadLetterEntry | None:
        key = _to_key(entry_id)
        if key is None:
            return None
        with self._session() as session:
            record = session.get(DeadLetterRecord, key)
            return None if record is None else _to_entry(record)

    def mark_processed(self, entry_id: str, result: Any = None) -> bool:
        return self._update(
            entry_id, PROCESSED, processing_result=_to_json(result), processing_error=None
        )

    def mark_failed(self, entry_id: str, error: str) -> bool:
        return self._update(entry_id, FAILED, processing_result=None, processing_error=error)

    def delete(self, entry_id: str) -> bool:
        key = _to_key(entry_id)
        if key is None:
            return False
        with self._session() as session:
            deleted = session.execute(sa.delete(DeadLetterRecord).where(DeadLetterRecord.id == key))
            session.commit()
            return deleted.rowcount > 0

    def clear(
        self,
        status: str | None = None,
        operation: str | None = None,
        created_before: float | None = None,
        created_after: float | None = None,
    ) -> int:
        stmt = sa.delete(DeadLetterRecord).where(
            *_conditions(status, operation, created_before, created_after)
        )
        with self._session() as session:
            deleted = session.execute(stmt)
            session.commit()
            return deleted.rowcount

    def count(
        self,
        status: str | None = None,
        operation: str | None = None,
        created_before: float | None = None,
        created_after: float | None = None,
    ) -> int:
        stmt = (
            sa.select(sa.func.count())
            .select_from(DeadLetterRecord)
            .where(*_conditions(status, operation, created_before, created_after))
        )
        with self._session() as session:
            return session.scalar(stmt) or 0

    def _update(self, entry_id: str, status: str, **changes: Any) -> bool:
        key = _to_key(entry_id)
        if key is None:
            return False
        stmt = (
            sa.update(DeadLetterRecord)
            .where(DeadLetterRecord.id == key)
            .values(status=status, processed_at=time.time(), **changes)
        )
        with self._session() as session:
            updated = session.execute(stmt)
            session.commit()
            return updated.rowcount > 0

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            msg = f"Dead letter storage operation failed: {exc}"
            raise StoreError(msg) from exc


def _conditions(
    status: str | None,
    operation: str | None,
    created_before: float | None,
    created_after: float | None,
) -> list[sa.ColumnElement[bool]]:
    conditions = []
    if status is not None:
        conditions.append(DeadLetterRecord.status == status)
    if operation is not None:
        conditions.append(DeadLetterRecord.operation == operation)
    if created_before is not None:
        conditions.append(DeadLetterRecord.created_at < created_before)
    if created_after is not None:
        conditions.append(DeadLetterRecord.created_at > created_after)
    return conditions


def _to_key(entry_id: str) -> int | None:
    try:
        return int(entry_id)
    except (TypeError, ValueError):
        return None


def _to_json(value: Any) -> Any:
    # Values that JSON cannot encode are stored as their string form.
    return json.loads(json.dumps(value, default=str))


def _summarize(record: AttemptRecord | dict[str, Any]) -> dict[str, Any]:
    if isinstance(record, dict):
        return _to_json(record)
    error = record.exception
    return {
        "attempt": record.attempt,
        "error_class": type(error).__qualname__,
        "error_message": str(error),
        "was_retryable": record.was_retryable,
        "delay": record.delay,
        "duration": record.duration,
        "timestamp": record.timestamp,
    }


def _to_entry(record: DeadLetterRecord) -> DeadLetterEntry:
    return DeadLetterEntry(
        id=str(record.id),
        operation=record.operation,
        error_message=record.error_message,
        error_class=record.error_class,
        error_trace=record.error_trace,
        exception_history=list(record.exception_history or []),
        context=dict(record.context or {}),
        status=record.status,
        created_at=record.created_at,
        processed_at=record.processed_at,
        processing_result=record.processing_result,
        processing_error=record.processing_error,
    )

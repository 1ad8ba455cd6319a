r"""Unit tests for the SQL dead-letter storage."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
import sqlalchemy as sa

from aretry.dead_letter import DeadLetterEntry, DeadLetterQueueHandler
from aretry.dead_letter_sql import SQLDeadLetterStorage
from aretry.exceptions import StoreError
from aretry.retry import AttemptRecord, RetryResult

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'dead_letters.db'}"


@pytest.fixture
def storage(url: str) -> SQLDeadLetterStorage:
    return SQLDeadLetterStorage(url)


def make_entry(operation: str = "sync", created_at: float = 100.0) -> DeadLetterEntry:
    return DeadLetterEntry(operation=operation, error_message="slow", created_at=created_at)


##########################################
#     Tests for SQLDeadLetterStorage     #
##########################################


def test_sql_storage_creates_table(storage: SQLDeadLetterStorage) -> None:
    assert "retry_dead_letters" in sa.inspect(storage.engine).get_table_names()


def test_sql_storage_accepts_engine(url: str) -> None:
    engine = sa.create_engine(url)
    assert SQLDeadLetterStorage(engine).engine is engine


def test_sql_storage_store_and_get(storage: SQLDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    entry = storage.get(entry_id)
    assert entry.id == entry_id
    assert entry.operation == "sync"
    assert entry.error_message == "slow"
    assert entry.status == "pending"
    assert entry.created_at == 100.0
    assert entry.processed_at is None


def test_sql_storage_ids_unique(storage: SQLDeadLetterStorage) -> None:
    assert storage.store(make_entry()) != storage.store(make_entry())


@pytest.mark.parametrize("entry_id", ["404", "not-a-number"])
def test_sql_storage_get_missing(storage: SQLDeadLetterStorage, entry_id: str) -> None:
    assert storage.get(entry_id) is None


def test_sql_storage_survives_new_instance(url: str) -> None:
    entry_id = SQLDeadLetterStorage(url).store(make_entry())
    assert SQLDeadLetterStorage(url).get(entry_id).operation == "sync"


def test_sql_storage_serializes_history(storage: SQLDeadLetterStorage) -> None:
    record = AttemptRecord(
        attempt=0,
        exception=TimeoutError("slow"),
        was_retryable=True,
        delay=0.0,
        duration=0.1,
        timestamp=1.0,
    )
    entry_id = storage.store(
        DeadLetterEntry(exception_history=[record], context={"batch": 3, "error": ValueError("x")})
    )
    entry = storage.get(entry_id)
    assert entry.exception_history == [
        {
            "attempt": 0,
            "error_class": "TimeoutError",
            "error_message": "slow",
            "was_retryable": True,
            "delay": 0.0,
            "duration": 0.1,
            "timestamp": 1.0,
        }
    ]
    assert entry.context == {"batch": 3, "error": "x"}


def test_sql_storage_retrieve_newest_first(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry("old", created_at=1.0))
    storage.store(make_entry("new", created_at=3.0))
    storage.store(make_entry("middle", created_at=2.0))
    assert [entry.operation for entry in storage.retrieve()] == ["new", "middle", "old"]


def test_sql_storage_retrieve_ties_newest_inserted_first(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry("first"))
    storage.store(make_entry("second"))
    assert [entry.operation for entry in storage.retrieve()] == ["second", "first"]


def test_sql_storage_retrieve_limit(storage: SQLDeadLetterStorage) -> None:
    for i in range(5):
        storage.store(make_entry(created_at=float(i)))
    assert len(storage.retrieve(limit=2)) == 2
    assert len(storage.retrieve(limit=None)) == 5


def test_sql_storage_retrieve_filters(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry("a", created_at=1.0))
    processed_id = storage.store(make_entry("b", created_at=2.0))
    storage.store(make_entry("a", created_at=3.0))
    storage.mark_processed(processed_id)
    assert [e.operation for e in storage.retrieve(status="processed")] == ["b"]
    assert [e.created_at for e in storage.retrieve(operation="a")] == [3.0, 1.0]
    assert [e.created_at for e in storage.retrieve(created_before=2.0)] == [1.0]
    assert [e.created_at for e in storage.retrieve(created_after=2.0)] == [3.0]


def test_sql_storage_mark_processed(storage: SQLDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    with patch("aretry.dead_letter_sql.time.time", return_value=500.0):
        assert storage.mark_processed(entry_id, result={"replayed": True})
    entry = storage.get(entry_id)
    assert entry.status == "processed"
    assert entry.processed_at == 500.0
    assert entry.processing_result == {"replayed": True}
    assert entry.processing_error is None


def test_sql_storage_mark_failed(storage: SQLDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    assert storage.mark_failed(entry_id, "still down")
    entry = storage.get(entry_id)
    assert entry.status == "failed"
    assert entry.processing_error == "still down"


@pytest.mark.parametrize("entry_id", ["404", "not-a-number"])
def test_sql_storage_mark_missing(storage: SQLDeadLetterStorage, entry_id: str) -> None:
    assert not storage.mark_processed(entry_id)
    assert not storage.mark_failed(entry_id, "error")
    assert not storage.delete(entry_id)


def test_sql_storage_delete(storage: SQLDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    assert storage.delete(entry_id)
    assert not storage.delete(entry_id)
    assert storage.count() == 0


def test_sql_storage_clear_all(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry())
    storage.store(make_entry())
    assert storage.clear() == 2
    assert storage.count() == 0


def test_sql_storage_clear_filtered(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry("a"))
    storage.store(make_entry("b"))
    assert storage.clear(operation="a") == 1
    assert [e.operation for e in storage.retrieve()] == ["b"]


def test_sql_storage_count(storage: SQLDeadLetterStorage) -> None:
    storage.store(make_entry("a"))
    storage.store(make_entry("b"))
    assert storage.count() == 2
    assert storage.count(operation="b") == 1


def test_sql_storage_drop_tables(storage: SQLDeadLetterStorage) -> None:
    storage.drop_tables()
    assert "retry_dead_letters" not in sa.inspect(storage.engine).get_table_names()
    with pytest.raises(StoreError, match=r"Dead letter storage operation failed"):
        storage.count()


def test_sql_storage_without_table_creation(url: str) -> None:
    storage = SQLDeadLetterStorage(url, create_tables=False)
    with pytest.raises(StoreError, match=r"Dead letter storage operation failed"):
        storage.store(make_entry())


#############################################################
#     Tests for DeadLetterQueueHandler with SQL storage     #
#############################################################


def test_handler_with_sql_storage(storage: SQLDeadLetterStorage) -> None:
    handler = DeadLetterQueueHandler(storage, log_failures=False)
    ok_id = handler.handle(RetryResult(error=TimeoutError("ok")), operation="ok")
    bad_id = handler.handle(RetryResult(error=TimeoutError("bad")), operation="bad")

    def processor(entry: DeadLetterEntry, entry_id: str) -> str:
        if entry.operation == "bad":
            msg = "still failing"
            raise RuntimeError(msg)
        return f"replayed {entry_id}"

    results = handler.process_queue(processor)
    assert results == {
        ok_id: {"success": True, "result": f"replayed {ok_id}"},
        bad_id: {"success": False, "error": "still failing"},
    }
    assert storage.get(ok_id).processing_result == f"replayed {ok_id}"
    assert storage.get(bad_id).status == "failed"
    assert storage.get(ok_id).error_class == "TimeoutError"
    assert "TimeoutError: ok" in storage.get(ok_id).error_trace

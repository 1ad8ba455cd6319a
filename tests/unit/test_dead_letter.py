r"""Unit tests for the dead-letter queue."""

from __future__ import annotations

import logging
from unittest.mock import Mock, patch

import pytest

from aretry.dead_letter import (
    DeadLetterEntry,
    DeadLetterQueueHandler,
    InMemoryDeadLetterStorage,
    default_dead_letter_handler,
)
from aretry.retry import AttemptRecord, RetryResult


@pytest.fixture
def storage() -> InMemoryDeadLetterStorage:
    return InMemoryDeadLetterStorage()


@pytest.fixture
def handler(storage: InMemoryDeadLetterStorage) -> DeadLetterQueueHandler:
    return DeadLetterQueueHandler(storage, log_failures=False)


def make_entry(operation: str = "sync", created_at: float = 100.0) -> DeadLetterEntry:
    return DeadLetterEntry(operation=operation, error_message="slow", created_at=created_at)


###############################################
#     Tests for InMemoryDeadLetterStorage     #
###############################################


def test_storage_store_and_get(storage: InMemoryDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    entry = storage.get(entry_id)
    assert entry.id == entry_id
    assert entry.status == "pending"
    assert entry.operation == "sync"
    assert len(storage) == 1


def test_storage_ids_unique(storage: InMemoryDeadLetterStorage) -> None:
    assert storage.store(make_entry()) != storage.store(make_entry())


def test_storage_get_missing(storage: InMemoryDeadLetterStorage) -> None:
    assert storage.get("missing") is None


def test_storage_get_returns_copy(storage: InMemoryDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    storage.get(entry_id).status = "processed"
    assert storage.get(entry_id).status == "pending"


def test_storage_retrieve_newest_first(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry("old", created_at=1.0))
    storage.store(make_entry("new", created_at=3.0))
    storage.store(make_entry("middle", created_at=2.0))
    assert [entry.operation for entry in storage.retrieve()] == ["new", "middle", "old"]


def test_storage_retrieve_ties_newest_inserted_first(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry("first"))
    storage.store(make_entry("second"))
    assert [entry.operation for entry in storage.retrieve()] == ["second", "first"]


def test_storage_retrieve_limit(storage: InMemoryDeadLetterStorage) -> None:
    for i in range(5):
        storage.store(make_entry(created_at=float(i)))
    assert len(storage.retrieve(limit=2)) == 2
    assert len(storage.retrieve(limit=None)) == 5


def test_storage_retrieve_filters(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry("a", created_at=1.0))
    processed_id = storage.store(make_entry("b", created_at=2.0))
    storage.store(make_entry("a", created_at=3.0))
    storage.mark_processed(processed_id)
    assert [e.operation for e in storage.retrieve(status="processed")] == ["b"]
    assert [e.created_at for e in storage.retrieve(operation="a")] == [3.0, 1.0]
    assert [e.created_at for e in storage.retrieve(created_before=2.0)] == [1.0]
    assert [e.created_at for e in storage.retrieve(created_after=2.0)] == [3.0]


def test_storage_mark_processed(storage: InMemoryDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    with patch("aretry.dead_letter.time.time", return_value=500.0):
        assert storage.mark_processed(entry_id, result="replayed")
    entry = storage.get(entry_id)
    assert entry.status == "processed"
    assert entry.processed_at == 500.0
    assert entry.processing_result == "replayed"


def test_storage_mark_failed(storage: InMemoryDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    assert storage.mark_failed(entry_id, "still down")
    entry = storage.get(entry_id)
    assert entry.status == "failed"
    assert entry.processing_error == "still down"


def test_storage_mark_missing(storage: InMemoryDeadLetterStorage) -> None:
    assert not storage.mark_processed("missing")
    assert not storage.mark_failed("missing", "error")


def test_storage_delete(storage: InMemoryDeadLetterStorage) -> None:
    entry_id = storage.store(make_entry())
    assert storage.delete(entry_id)
    assert not storage.delete(entry_id)
    assert len(storage) == 0


def test_storage_clear_all(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry())
    storage.store(make_entry())
    assert storage.clear() == 2
    assert len(storage) == 0


def test_storage_clear_filtered(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry("a"))
    storage.store(make_entry("b"))
    assert storage.clear(operation="a") == 1
    assert [e.operation for e in storage.retrieve()] == ["b"]


def test_storage_count(storage: InMemoryDeadLetterStorage) -> None:
    storage.store(make_entry("a"))
    storage.store(make_entry("b"))
    assert storage.count() == 2
    assert storage.count(operation="b") == 1


############################################
#     Tests for DeadLetterQueueHandler     #
############################################


def test_handler_default_storage() -> None:
    assert isinstance(DeadLetterQueueHandler().storage, InMemoryDeadLetterStorage)


def test_handler_invalid_log_level() -> None:
    with pytest.raises(ValueError, match=r"log_level must be a logging level name"):
        DeadLetterQueueHandler(log_level="loud")


def test_handler_handle(handler: DeadLetterQueueHandler, storage: InMemoryDeadLetterStorage) -> None:
    error = TimeoutError("slow")
    record = AttemptRecord(
        attempt=0, exception=error, was_retryable=True, delay=0.0, duration=0.1, timestamp=1.0
    )
    result = RetryResult(error=error, exception_history=[record])
    entry_id = handler.handle(result, operation="sync-users", context={"batch": 3})
    entry = storage.get(entry_id)
    assert entry.operation == "sync-users"
    assert entry.error_message == "slow"
    assert entry.error_class == "TimeoutError"
    assert "TimeoutError: slow" in entry.error_trace
    assert entry.exception_history == [record]
    assert entry.context == {"batch": 3}
    assert entry.status == "pending"


def test_handler_handle_qualified_error_class(
    handler: DeadLetterQueueHandler, storage: InMemoryDeadLetterStorage
) -> None:
    class SyncError(Exception):
        pass

    entry_id = handler.handle(RetryResult(error=SyncError("boom")))
    assert storage.get(entry_id).error_class.endswith("SyncError")
    assert storage.get(entry_id).error_class.startswith(__name__)


def test_handler_handle_success(
    handler: DeadLetterQueueHandler, storage: InMemoryDeadLetterStorage
) -> None:
    assert handler.handle(RetryResult(value=1)) is None
    assert len(storage) == 0


def test_handler_handle_logs(storage: InMemoryDeadLetterStorage, caplog: pytest.LogCaptureFixture) -> None:
    handler = DeadLetterQueueHandler(storage, log_level="error")
    with caplog.at_level(logging.ERROR):
        handler.handle(RetryResult(error=TimeoutError("slow")), operation="sync")
    assert "Retry operation failed after 0 attempts: sync. Error: slow" in caplog.text


def test_handler_handle_unnamed_operation(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        DeadLetterQueueHandler().handle(RetryResult(error=TimeoutError("slow")))
    assert "Unnamed operation" in caplog.text


def test_handler_custom_handler(handler: DeadLetterQueueHandler, mock_callback: Mock) -> None:
    result = RetryResult(error=TimeoutError("slow"))
    assert handler.with_handler(mock_callback) is handler
    handler.handle(result, operation="sync", context={"a": 1})
    mock_callback.assert_called_once_with(result, "sync", {"a": 1})


def test_handler_process_queue(
    handler: DeadLetterQueueHandler, storage: InMemoryDeadLetterStorage
) -> None:
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
    assert storage.get(ok_id).status == "processed"
    assert storage.get(bad_id).status == "failed"
    assert storage.get(bad_id).processing_error == "still failing"


def test_handler_process_queue_only_pending(
    handler: DeadLetterQueueHandler, storage: InMemoryDeadLetterStorage
) -> None:
    entry_id = handler.handle(RetryResult(error=TimeoutError()))
    handler.process_queue(lambda entry, entry_id: None)
    processor = Mock()
    assert handler.process_queue(processor) == {}
    processor.assert_not_called()
    assert storage.get(entry_id).status == "processed"


def test_handler_process_queue_logs_errors(
    storage: InMemoryDeadLetterStorage, caplog: pytest.LogCaptureFixture
) -> None:
    handler = DeadLetterQueueHandler(storage)
    entry_id = handler.handle(RetryResult(error=TimeoutError()))
    with caplog.at_level(logging.ERROR):
        handler.process_queue(Mock(side_effect=ValueError("nope")))
    assert f"Failed to process dead letter queue item {entry_id}: nope" in caplog.text


#################################################
#     Tests for default_dead_letter_handler     #
#################################################


def test_default_dead_letter_handler_is_shared() -> None:
    handler = default_dead_letter_handler()
    assert isinstance(handler, DeadLetterQueueHandler)
    assert default_dead_letter_handler() is handler

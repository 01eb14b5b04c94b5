"""Tests for the JSON array record store."""

from __future__ import annotations

from typing import Optional

from core.exceptions import SlotDecodeError, StorageError
from core.record_store import LoadStatus, LocalRecordStore
from core.storage import InMemorySlotStorage


class _BrokenStorage:
    """Storage whose every operation fails."""

    def read(self, slot: str) -> Optional[str]:
        raise StorageError("disk unavailable")

    def write(self, slot: str, value: str) -> None:
        raise StorageError("disk full")

    def remove(self, slot: str) -> None:
        raise StorageError("read-only filesystem")


def test_missing_slot_loads_empty() -> None:
    store = LocalRecordStore(InMemorySlotStorage(), "history")

    result = store.read()
    assert result.status is LoadStatus.MISSING
    assert result.ok
    assert store.load() == []


def test_save_then_load_preserves_order() -> None:
    store = LocalRecordStore(InMemorySlotStorage(), "history")
    records = [{"id": "b"}, {"id": "a"}, {"id": "c", "note": "ünïcode"}]

    assert store.save(records)
    assert store.load() == records


def test_corrupt_blob_loads_empty_without_raising() -> None:
    storage = InMemorySlotStorage()
    storage.write("history", "{not json")
    store = LocalRecordStore(storage, "history")

    result = store.read()
    assert result.status is LoadStatus.CORRUPT
    assert not result.ok
    assert store.load() == []

    storage.write("history", '{"id": "not-an-array"}')
    assert store.read().status is LoadStatus.CORRUPT


def test_non_object_elements_are_skipped() -> None:
    storage = InMemorySlotStorage()
    storage.write("history", '[{"id": "r1"}, 42, "text", null, {"id": "r2"}]')

    result = LocalRecordStore(storage, "history").read()
    assert result.status is LoadStatus.OK
    assert result.records == [{"id": "r1"}, {"id": "r2"}]
    assert result.skipped == 3


def test_storage_failures_become_flags() -> None:
    store = LocalRecordStore(_BrokenStorage(), "history")

    assert store.read().status is LoadStatus.FAILED
    assert store.load() == []
    assert store.save([{"id": "r1"}]) is False
    assert store.remove() is False


def test_unserialisable_records_are_rejected() -> None:
    storage = InMemorySlotStorage()
    store = LocalRecordStore(storage, "history")

    assert store.save([{"id": "r1", "payload": object()}]) is False
    assert storage.read("history") is None


def test_remove_deletes_slot() -> None:
    storage = InMemorySlotStorage()
    store = LocalRecordStore(storage, "notifications")
    store.save([{"id": "n1"}])

    assert store.remove()
    assert storage.read("notifications") is None
    assert store.read().status is LoadStatus.MISSING


def test_undecodable_slot_is_corrupt_not_failed() -> None:
    class _BinaryStorage(InMemorySlotStorage):
        def read(self, slot: str) -> Optional[str]:
            raise SlotDecodeError("invalid start byte")

    result = LocalRecordStore(_BinaryStorage(), "history").read()
    assert result.status is LoadStatus.CORRUPT
    assert result.ok is False
    assert result.records == []

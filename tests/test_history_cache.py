"""Tests for the completed-report history cache."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from config.settings import HistoryConfig
from core.exceptions import StorageError
from core.history import CompletedReportCache, HistorySnapshot, format_completion_time
from core.storage import FileSlotStorage, InMemorySlotStorage
from models.items import Category, ItemType, LostFoundItem

HISTORY_CONFIG = HistoryConfig(slot="completed_reports_history", date_locale="id", timezone="UTC")


def _item(item_id: str, name: str = "Umbrella") -> LostFoundItem:
    return LostFoundItem(
        id=item_id,
        user_id="owner-1",
        item_name=name,
        type=ItemType.FOUND,
        category=Category.ELECTRONICS,
        location="Kantin Utama",
        description="Left on a table.",
        image_url="https://example.invalid/img.jpg",
        whatsapp_number="628123456789",
        created_at=datetime(2026, 9, 20, 12, 0, tzinfo=timezone.utc),
    )


def _cache(storage, clock) -> CompletedReportCache:
    return CompletedReportCache(storage, HISTORY_CONFIG, clock=clock)


def test_insert_delete_clear_scenario(tmp_path: Path, clock) -> None:
    cache = _cache(FileSlotStorage(tmp_path), clock)

    assert cache.insert(_item("r1"))
    clock.advance(minutes=5)
    assert cache.insert(_item("r2"))
    assert [report.id for report in cache.snapshot] == ["r2", "r1"]

    assert cache.delete("r1")
    assert [report.id for report in cache.snapshot] == ["r2"]

    assert cache.clear()
    assert cache.snapshot == ()
    assert cache.count() == 0


def test_insert_is_idempotent(clock) -> None:
    cache = _cache(InMemorySlotStorage(), clock)

    assert cache.insert(_item("r1"))
    first = cache.snapshot
    clock.advance(hours=1)
    assert cache.insert(_item("r1", name="Renamed"))

    assert cache.count() == 1
    assert cache.snapshot == first
    assert cache.snapshot[0].item.item_name == "Umbrella"


def test_snapshot_sorted_by_completion_descending(clock) -> None:
    cache = _cache(InMemorySlotStorage(), clock)
    for index in range(5):
        clock.advance(seconds=1 + index)
        cache.insert(_item(f"r{index}"))

    completed = [report.completed_at for report in cache.snapshot]
    assert completed == sorted(completed, reverse=True)
    assert len(set(completed)) == 5


def test_insert_assigns_completion_time_and_format(clock) -> None:
    cache = _cache(InMemorySlotStorage(), clock)
    cache.insert(_item("r1"))

    report = cache.get_by_id("r1")
    assert report is not None
    assert report.completed_at == int(clock.now.timestamp() * 1000)
    assert report.completed_at_formatted == "1 Okt 2026, 08:30"
    assert report.item.is_completed is True
    assert report.item.category is Category.ELECTRONICS


def test_stored_layout_matches_history_slot(clock) -> None:
    storage = InMemorySlotStorage()
    _cache(storage, clock).insert(_item("r1"))

    stored = json.loads(storage.read("completed_reports_history") or "null")
    assert set(stored[0]) == {
        "id",
        "userId",
        "type",
        "itemName",
        "category",
        "location",
        "description",
        "imageUrl",
        "whatsappNumber",
        "createdAt",
        "completedAt",
        "completedAtFormatted",
    }
    assert stored[0]["type"] == "FOUND"
    assert stored[0]["createdAt"] == int(datetime(2026, 9, 20, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)


def test_history_survives_new_instance(tmp_path: Path, clock) -> None:
    _cache(FileSlotStorage(tmp_path), clock).insert(_item("r1"))

    reopened = _cache(FileSlotStorage(tmp_path), clock)
    assert reopened.count() == 1
    assert reopened.get_by_id("r1") is not None
    assert reopened.get_by_id("missing") is None


def test_malformed_entry_is_dropped_individually(clock) -> None:
    storage = InMemorySlotStorage()
    storage.write(
        "completed_reports_history",
        json.dumps(
            [
                {"id": "good", "itemName": "Keys", "completedAt": 2000, "category": "NOT_A_CATEGORY"},
                {"id": "bad-time", "completedAt": "yesterday"},
                {"itemName": "no id"},
                {"id": "older", "completedAt": 1000, "type": "FOUND"},
            ]
        ),
    )

    cache = _cache(storage, clock)
    assert [report.id for report in cache.snapshot] == ["good", "older"]
    assert cache.snapshot[0].item.category is Category.OTHER
    assert cache.snapshot[0].completed_at_formatted == "1 Jan 1970, 00:00"
    assert cache.get_by_id("bad-time") is None


def test_corrupt_slot_yields_empty_snapshot_and_recovers(clock) -> None:
    storage = InMemorySlotStorage()
    storage.write("completed_reports_history", "<<garbage>>")

    cache = _cache(storage, clock)
    assert cache.snapshot == ()

    assert cache.insert(_item("r1"))
    assert cache.count() == 1


def test_undecodable_slot_is_replaced_on_next_insert(tmp_path: Path, clock) -> None:
    storage = FileSlotStorage(tmp_path)
    storage.path_for("completed_reports_history").write_bytes(b"\xff\xfe garbage")

    cache = _cache(storage, clock)
    assert cache.snapshot == ()

    assert cache.insert(_item("r1"))
    assert cache.delete("missing")
    assert [report.id for report in cache.snapshot] == ["r1"]
    assert _cache(FileSlotStorage(tmp_path), clock).count() == 1


def test_clear_keeps_explicit_empty_array(clock) -> None:
    storage = InMemorySlotStorage()
    cache = _cache(storage, clock)
    cache.insert(_item("r1"))

    cache.clear()
    assert storage.read("completed_reports_history") == "[]"


def test_delete_removes_duplicates(clock) -> None:
    storage = InMemorySlotStorage()
    storage.write(
        "completed_reports_history",
        json.dumps([{"id": "dup", "completedAt": 1}, {"id": "dup", "completedAt": 2}, {"id": "keep", "completedAt": 3}]),
    )
    cache = _cache(storage, clock)

    assert cache.delete("dup")
    assert [report.id for report in cache.snapshot] == ["keep"]


def test_storage_failure_returns_false(clock) -> None:
    class _ReadOnlyStorage(InMemorySlotStorage):
        def write(self, slot: str, value: str) -> None:
            raise StorageError("read-only")

    cache = _cache(_ReadOnlyStorage(), clock)

    assert cache.insert(_item("r1")) is False
    assert cache.clear() is False
    assert cache.count() == 0


def test_unreadable_storage_blocks_mutations(clock) -> None:
    class _UnreadableStorage(InMemorySlotStorage):
        def read(self, slot: str) -> Optional[str]:
            raise StorageError("io error")

    cache = _cache(_UnreadableStorage(), clock)

    assert cache.snapshot == ()
    assert cache.insert(_item("r1")) is False
    assert cache.delete("r1") is False


def test_subscribers_see_every_mutation(clock) -> None:
    cache = _cache(InMemorySlotStorage(), clock)
    seen: List[HistorySnapshot] = []
    subscription = cache.subscribe(seen.append)

    cache.insert(_item("r1"))
    cache.delete("r1")
    subscription.close()
    cache.insert(_item("r2"))

    assert [len(snapshot) for snapshot in seen] == [0, 1, 0]


def test_format_completion_time_locales() -> None:
    millis = int(datetime(2024, 5, 3, 8, 5, tzinfo=timezone.utc).timestamp() * 1000)

    assert format_completion_time(millis, "id", timezone.utc) == "3 Mei 2024, 08:05"
    assert format_completion_time(millis, "en", timezone.utc) == "3 May 2024, 08:05"

"""On-device history of reports the owner marked as completed.

Once a report leaves the remote store it only survives here, so this cache is
the source of truth for the user's own finished reports. Entries are written
once and never edited; a changed report is deleted and inserted again.

Updates:
    v0.1 - 2026-10-06 - Added completed-report cache with idempotent inserts.
    v0.2 - 2026-10-07 - Hydrated stored entries one at a time so a single bad
        record no longer empties the history.
    v0.3 - 2026-10-10 - Instrumented cache mutations with telemetry spans and metrics.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config.settings import HistoryConfig
from core.observable import ObservableValue, Subscription
from core.record_store import LoadStatus, LocalRecordStore, Record
from core.storage import SlotStorage
from core.telemetry import emit_metric, log_span
from models.items import Category, CompletedReport, ItemType, LostFoundItem

LOGGER = logging.getLogger("lostfound.history")

HistorySnapshot = Tuple[CompletedReport, ...]

MONTH_ABBREVIATIONS: Dict[str, Tuple[str, ...]] = {
    "id": ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"),
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def format_completion_time(
    millis: int,
    locale: str = "id",
    tz: Optional[tzinfo] = None,
) -> str:
    """Render epoch milliseconds as ``d MMM yyyy, HH:mm``."""
    months = MONTH_ABBREVIATIONS.get(locale, MONTH_ABBREVIATIONS["en"])
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    moment = moment.astimezone(tz) if tz is not None else moment.astimezone()
    return f"{moment.day} {months[moment.month - 1]} {moment.year}, {moment:%H:%M}"


def _require_int(value: object, name: str) -> int:
    # bool is an int subclass but never a valid timestamp.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    return int(value)


def report_to_record(report: CompletedReport) -> Record:
    """Serialise a completed report into its stored JSON object."""
    item = report.item
    return {
        "id": item.id,
        "userId": item.user_id,
        "type": item.type.value,
        "itemName": item.item_name,
        "category": item.category.value,
        "location": item.location,
        "description": item.description,
        "imageUrl": item.image_url,
        "whatsappNumber": item.whatsapp_number,
        "createdAt": _epoch_millis(item.created_at),
        "completedAt": report.completed_at,
        "completedAtFormatted": report.completed_at_formatted,
    }


class CompletedReportCache:
    """Persistent, observable history of completed reports."""

    def __init__(
        self,
        storage: SlotStorage,
        config: Optional[HistoryConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or HistoryConfig()
        self._store = LocalRecordStore(storage, self._config.slot)
        self._clock = clock
        self._tz = self._resolve_timezone(self._config.timezone)
        self._logger = LOGGER
        self._snapshot: ObservableValue[HistorySnapshot] = ObservableValue(())
        self.refresh()

    @property
    def snapshot(self) -> HistorySnapshot:
        """Completed reports, most recently completed first."""
        return self._snapshot.value

    def subscribe(self, callback: Callable[[HistorySnapshot], None]) -> Subscription:
        """Receive the current snapshot now and every republished one after."""
        return self._snapshot.subscribe(callback)

    def count(self) -> int:
        return len(self._snapshot.value)

    def insert(self, item: LostFoundItem) -> bool:
        """Store *item* as completed unless an entry with its id already exists."""
        result = self._store.read()
        if result.status is LoadStatus.FAILED:
            return False
        records = result.records

        if any(record.get("id") == item.id for record in records):
            self._logger.debug("Report already in history: %s", item.id)
            return True

        completed_at = _epoch_millis(self._clock())
        report = CompletedReport(
            item=item.as_completed(),
            completed_at=completed_at,
            completed_at_formatted=self.format_time(completed_at),
        )
        with log_span("history.insert", id=item.id):
            records.append(report_to_record(report))
            if not self._store.save(records):
                return False
        self._logger.info("Report saved to local history: %s", item.item_name or item.id)
        emit_metric("history.insert")
        self._publish(records)
        return True

    def get_by_id(self, item_id: str) -> Optional[CompletedReport]:
        """Return the stored report for *item_id*, or None."""
        for record in self._store.load():
            if record.get("id") != item_id:
                continue
            report = self._hydrate(record)
            if report is not None:
                return report
        return None

    def delete(self, item_id: str) -> bool:
        """Remove every entry stored under *item_id*."""
        result = self._store.read()
        if result.status is LoadStatus.FAILED:
            return False
        remaining = [record for record in result.records if record.get("id") != item_id]
        with log_span("history.delete", id=item_id):
            if not self._store.save(remaining):
                return False
        removed = len(result.records) - len(remaining)
        self._logger.info("Deleted %s history entries for %s", removed, item_id)
        emit_metric("history.delete", value=removed)
        self._publish(remaining)
        return True

    def clear(self) -> bool:
        """Drop all history, keeping an explicit empty array in the slot."""
        if not self._store.save([]):
            return False
        self._logger.info("Cleared local history")
        emit_metric("history.clear")
        self._publish([])
        return True

    def refresh(self) -> HistorySnapshot:
        """Reload the slot and republish; unreadable data yields an empty snapshot."""
        return self._publish(self._store.load())

    def format_time(self, millis: int) -> str:
        try:
            return format_completion_time(millis, self._config.date_locale, self._tz)
        except (OverflowError, OSError, ValueError) as exc:
            self._logger.debug("Unable to format completion time %s: %s", millis, exc)
            return ""

    def _publish(self, records: List[Record]) -> HistorySnapshot:
        reports = [report for report in map(self._hydrate, records) if report is not None]
        reports.sort(key=lambda report: report.completed_at, reverse=True)
        snapshot = tuple(reports)
        self._snapshot.publish(snapshot)
        self._logger.debug("Loaded %s reports from local history", len(snapshot))
        return snapshot

    def _hydrate(self, record: Record) -> Optional[CompletedReport]:
        try:
            return self._build_report(record)
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            self._logger.warning("Skipping malformed history entry %r: %s", record.get("id"), exc)
            return None

    def _build_report(self, record: Record) -> CompletedReport:
        item_id = record["id"]
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("missing report id")

        now_millis = _epoch_millis(self._clock())
        created_raw = record.get("createdAt")
        created_millis = now_millis if created_raw is None else _require_int(created_raw, "createdAt")
        completed_raw = record.get("completedAt")
        completed_at = now_millis if completed_raw is None else _require_int(completed_raw, "completedAt")

        formatted = record.get("completedAtFormatted")
        if not isinstance(formatted, str):
            formatted = self.format_time(completed_at)

        item = LostFoundItem(
            id=item_id,
            user_id=_text(record, "userId"),
            item_name=_text(record, "itemName"),
            type=ItemType.parse(record.get("type", ItemType.LOST.value)),
            category=Category.parse(record.get("category", Category.OTHER.value)),
            location=_text(record, "location"),
            description=_text(record, "description"),
            image_url=_text(record, "imageUrl"),
            whatsapp_number=_text(record, "whatsappNumber"),
            is_completed=True,
            created_at=datetime.fromtimestamp(created_millis / 1000, tz=timezone.utc),
        )
        return CompletedReport(item=item, completed_at=completed_at, completed_at_formatted=formatted)

    def _resolve_timezone(self, name: Optional[str]) -> Optional[tzinfo]:
        if not name:
            return None
        if name.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            LOGGER.warning("Unknown history timezone %s (%s); using host zone.", name, exc)
            return None


def _text(record: Record, key: str) -> str:
    value: Any = record.get(key)
    return value if isinstance(value, str) else ("" if value is None else str(value))

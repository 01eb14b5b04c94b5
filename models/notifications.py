"""Typed records for the on-device notification inbox.

Updates:
    v0.1 - 2026-10-06 - Added notification item and second-granularity timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional


class NotificationType(str, Enum):
    """Kinds of events delivered to the inbox."""

    GENERAL = "GENERAL"
    NEW_REPORT = "NEW_REPORT"
    COMPLETED_REPORT = "COMPLETED_REPORT"
    CONTACTED = "CONTACTED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ITEM_FOUND = "ITEM_FOUND"
    ITEM_LOST = "ITEM_LOST"
    ITEM_RETURNED = "ITEM_RETURNED"
    MATCH_FOUND = "MATCH_FOUND"
    REMINDER = "REMINDER"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: object) -> "NotificationType":
        if value is None:
            return cls.GENERAL
        try:
            return cls(str(value))
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """Seconds/nanos pair matching the document store's timestamp shape."""

    seconds: int
    nanos: int = 0

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return cls(seconds=int(value.timestamp()), nanos=0)

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds + self.nanos / 1e9, tz=timezone.utc)

    def to_dict(self) -> Dict[str, int]:
        return {"seconds": self.seconds, "nanos": self.nanos}


@dataclass(frozen=True, slots=True)
class NotificationItem:
    """A single inbox entry; only ``read`` changes after insertion."""

    id: str
    title: str
    description: str
    timestamp: Timestamp
    read: bool = False
    item_id: Optional[str] = None
    type: NotificationType = NotificationType.GENERAL

    def mark_read(self) -> "NotificationItem":
        return self if self.read else replace(self, read=True)

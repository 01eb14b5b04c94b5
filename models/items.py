"""Typed records for lost-and-found reports and their completed history.

Updates:
    v0.1 - 2026-10-05 - Added report, category, and completed-report dataclasses.
    v0.2 - 2026-10-08 - Switched report timestamps to timezone-aware UTC handling.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def _utcnow() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class ItemType(str, Enum):
    """Whether a report describes something lost or something found."""

    LOST = "LOST"
    FOUND = "FOUND"

    @classmethod
    def parse(cls, value: object) -> "ItemType":
        try:
            return cls(str(value))
        except ValueError:
            return cls.LOST


class Category(str, Enum):
    """Report classification shown as filter chips in the client."""

    ELECTRONICS = "ELECTRONICS"
    DOCUMENTS = "DOCUMENTS"
    KEYS_ACCESSORIES = "KEYS_ACCESSORIES"
    BAGS_WALLETS = "BAGS_WALLETS"
    BOOKS_STATIONERY = "BOOKS_STATIONERY"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: object) -> "Category":
        try:
            return cls(str(value))
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True, slots=True)
class LostFoundItem:
    """A report as held by the remote document store."""

    id: str
    user_id: str
    item_name: str
    type: ItemType = ItemType.LOST
    category: Category = Category.OTHER
    location: str = ""
    description: str = ""
    image_url: str = ""
    whatsapp_number: str = ""
    user_name: str = ""
    user_photo_url: str = ""
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)
    image_storage_path: str = ""

    def as_completed(self) -> "LostFoundItem":
        """Return a copy flagged as completed."""
        if self.is_completed:
            return self
        return replace(self, is_completed=True)


@dataclass(frozen=True, slots=True)
class CompletedReport:
    """A report the owner marked resolved, kept in on-device history."""

    item: LostFoundItem
    completed_at: int
    completed_at_formatted: str

    @property
    def id(self) -> str:
        return self.item.id

"""Ordered record persistence on top of a single storage slot.

The whole sequence is stored as one JSON array and rewritten in full on every
save. That keeps reads trivially consistent but grows linearly with the data,
which is fine for inbox and history sizes (tens to a few hundred records).

Updates:
    v0.1 - 2026-10-06 - Added JSON array record store with corruption tolerance.
    v0.2 - 2026-10-07 - Reported load outcomes as tagged results.
    v0.3 - 2026-10-18 - Classified undecodable slot bytes as corrupt, not failed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

from core.exceptions import SlotDecodeError, StorageError
from core.storage import SlotStorage

Record = Dict[str, Any]

LOGGER = logging.getLogger("lostfound.records")


class LoadStatus(str, Enum):
    OK = "ok"
    MISSING = "missing"
    CORRUPT = "corrupt"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Outcome of reading a slot; ``records`` is empty unless status is OK."""

    status: LoadStatus
    records: List[Record] = field(default_factory=list)
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (LoadStatus.OK, LoadStatus.MISSING)


class LocalRecordStore:
    """Serialises an ordered sequence of JSON objects into one named slot."""

    def __init__(self, storage: SlotStorage, slot: str) -> None:
        self._storage = storage
        self._slot = slot
        self._logger = LOGGER.getChild(slot)

    @property
    def slot(self) -> str:
        return self._slot

    def read(self) -> LoadResult:
        """Read the slot and report what was found."""
        try:
            raw = self._storage.read(self._slot)
        except SlotDecodeError as exc:
            self._logger.warning("Slot %s is not valid text (%s); treating as empty.", self._slot, exc)
            return LoadResult(LoadStatus.CORRUPT)
        except StorageError as exc:
            self._logger.error("Unable to read slot %s: %s", self._slot, exc)
            return LoadResult(LoadStatus.FAILED)

        if raw is None:
            return LoadResult(LoadStatus.MISSING)

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._logger.warning("Slot %s holds malformed JSON (%s); treating as empty.", self._slot, exc)
            return LoadResult(LoadStatus.CORRUPT)

        if not isinstance(payload, list):
            self._logger.warning(
                "Slot %s holds %s instead of an array; treating as empty.",
                self._slot,
                type(payload).__name__,
            )
            return LoadResult(LoadStatus.CORRUPT)

        records = [entry for entry in payload if isinstance(entry, dict)]
        skipped = len(payload) - len(records)
        if skipped:
            self._logger.debug("Skipped %s non-object entries in slot %s", skipped, self._slot)
        return LoadResult(LoadStatus.OK, records, skipped)

    def load(self) -> List[Record]:
        """Return the stored records; missing or unreadable slots yield []."""
        return self.read().records

    def save(self, records: Sequence[Record]) -> bool:
        """Overwrite the slot with *records*; returns False on failure."""
        try:
            blob = json.dumps(list(records), ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            self._logger.error("Unable to serialise %s records for slot %s: %s", len(records), self._slot, exc)
            return False

        try:
            self._storage.write(self._slot, blob)
        except StorageError as exc:
            self._logger.error("Unable to write slot %s: %s", self._slot, exc)
            return False
        return True

    def remove(self) -> bool:
        """Delete the slot entirely; returns False on failure."""
        try:
            self._storage.remove(self._slot)
        except StorageError as exc:
            self._logger.error("Unable to remove slot %s: %s", self._slot, exc)
            return False
        return True

"""Process-wide notification inbox persisted on the device.

The inbox is kept newest-first by construction: every append prepends, and the
capacity cap drops entries from the tail. Use :func:`get_notification_cache` to
reach the single shared instance.

Updates:
    v0.1 - 2026-10-06 - Added capped notification inbox with read tracking.
    v0.2 - 2026-10-07 - Added expiry sweep that skips the write when nothing expired.
    v0.3 - 2026-10-08 - Guarded singleton construction for concurrent first access.
    v0.4 - 2026-10-12 - Added bulk removal of read notifications.
    v0.5 - 2026-10-18 - Rejected out-of-range timestamps and non-boolean read flags.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, List, Optional, Tuple

from config.settings import AppConfig, NotificationConfig, get_app_config
from core.observable import ObservableValue, Subscription
from core.record_store import LoadStatus, LocalRecordStore, Record
from core.storage import SlotStorage, build_slot_storage
from core.telemetry import emit_metric, log_span
from models.notifications import NotificationItem, NotificationType, Timestamp

LOGGER = logging.getLogger("lostfound.notifications")

SECONDS_PER_DAY = 24 * 60 * 60

NotificationSnapshot = Tuple[NotificationItem, ...]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def notification_to_record(item: NotificationItem) -> Record:
    return {
        "id": item.id,
        "type": item.type.value,
        "title": item.title,
        "description": item.description,
        "timestamp": item.timestamp.to_dict(),
        "read": item.read,
        "itemId": item.item_id,
    }


def record_to_notification(record: Record) -> NotificationItem:
    """Rebuild a notification; raises ValueError for unusable records."""
    notification_id = record.get("id")
    if not isinstance(notification_id, str) or not notification_id:
        raise ValueError("missing notification id")

    timestamp_raw = record.get("timestamp")
    if not isinstance(timestamp_raw, dict):
        raise ValueError(f"timestamp must be an object, got {timestamp_raw!r}")
    seconds = timestamp_raw.get("seconds")
    nanos = timestamp_raw.get("nanos", 0)
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise ValueError(f"timestamp.seconds must be an integer, got {seconds!r}")
    if isinstance(nanos, bool) or not isinstance(nanos, int):
        raise ValueError(f"timestamp.nanos must be an integer, got {nanos!r}")

    timestamp = Timestamp(seconds=seconds, nanos=nanos)
    try:
        timestamp.to_datetime()
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"timestamp {seconds} is out of range: {exc}") from exc

    item_id = record.get("itemId")
    return NotificationItem(
        id=notification_id,
        title=str(record.get("title") or ""),
        description=str(record.get("description") or ""),
        timestamp=timestamp,
        read=record.get("read") is True,
        item_id=str(item_id) if item_id is not None else None,
        type=NotificationType.parse(record.get("type")),
    )


class NotificationCache:
    """Capped, observable inbox of notifications, newest first."""

    def __init__(
        self,
        storage: SlotStorage,
        config: Optional[NotificationConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or NotificationConfig()
        self._store = LocalRecordStore(storage, self._config.slot)
        self._clock = clock
        self._logger = LOGGER
        self._id_lock = Lock()
        self._last_id_millis = 0
        self._snapshot: ObservableValue[NotificationSnapshot] = ObservableValue(())
        self.refresh()

    @property
    def max_items(self) -> int:
        return self._config.max_items

    @property
    def snapshot(self) -> NotificationSnapshot:
        """Notifications, newest first."""
        return self._snapshot.value

    def subscribe(self, callback: Callable[[NotificationSnapshot], None]) -> Subscription:
        return self._snapshot.subscribe(callback)

    def append(
        self,
        title: str,
        body: str,
        type: str = NotificationType.GENERAL.value,
        item_id: Optional[str] = None,
    ) -> bool:
        """Prepend a new unread notification, evicting the oldest beyond the cap."""
        current = self._load()
        if current is None:
            return False

        notification = NotificationItem(
            id=self._next_id(),
            title=title,
            description=body,
            timestamp=Timestamp.from_datetime(self._clock()),
            read=False,
            item_id=item_id,
            type=NotificationType.parse(type),
        )
        updated = [notification, *current][: self._config.max_items]
        evicted = len(current) + 1 - len(updated)

        with log_span("notifications.append", id=notification.id):
            if not self._persist(updated):
                return False
        if evicted:
            self._logger.debug("Evicted %s notifications beyond cap %s", evicted, self._config.max_items)
        self._logger.info("Added local notification: %s", title)
        emit_metric("notifications.append")
        return True

    def mark_read(self, notification_id: str) -> bool:
        """Flag one notification as read; False when it does not exist."""
        current = self._load()
        if current is None:
            return False
        for index, notification in enumerate(current):
            if notification.id == notification_id:
                current[index] = notification.mark_read()
                return self._persist(current)
        return False

    def mark_all_read(self) -> bool:
        current = self._load()
        if current is None:
            return False
        if not self._persist([notification.mark_read() for notification in current]):
            return False
        self._logger.info("Marked all notifications as read")
        return True

    def delete(self, notification_id: str) -> bool:
        """Remove one notification; False when nothing matched."""
        current = self._load()
        if current is None:
            return False
        remaining = [notification for notification in current if notification.id != notification_id]
        if len(remaining) == len(current):
            return False
        if not self._persist(remaining):
            return False
        self._logger.info("Deleted notification: %s", notification_id)
        return True

    def delete_read(self) -> bool:
        """Remove every notification already marked as read."""
        current = self._load()
        if current is None:
            return False
        remaining = [notification for notification in current if not notification.read]
        removed = len(current) - len(remaining)
        if not removed:
            return True
        if not self._persist(remaining):
            return False
        self._logger.info("Deleted %s read notifications", removed)
        emit_metric("notifications.deleted_read", value=removed)
        return True

    def clear(self) -> bool:
        """Remove the inbox slot entirely."""
        if not self._store.remove():
            return False
        self._snapshot.publish(())
        self._logger.info("Cleared all local notifications")
        return True

    def unread_count(self) -> int:
        """Count unread notifications in storage, independent of the snapshot."""
        return sum(1 for notification in self._load() or [] if not notification.read)

    def cleanup_expired(self, horizon_days: Optional[int] = None) -> bool:
        """Drop notifications older than *horizon_days* (configured default 30)."""
        days = self._config.expiry_days if horizon_days is None else horizon_days
        current = self._load()
        if current is None:
            return False

        cutoff = Timestamp.from_datetime(self._clock()).seconds - days * SECONDS_PER_DAY
        active = [notification for notification in current if notification.timestamp.seconds > cutoff]
        removed = len(current) - len(active)
        if not removed:
            return True

        with log_span("notifications.cleanup_expired", removed=removed, horizon_days=days):
            if not self._persist(active):
                return False
        self._logger.info("Cleaned up %s expired notifications", removed)
        emit_metric("notifications.expired", value=removed)
        return True

    def refresh(self) -> NotificationSnapshot:
        """Reload the slot and republish."""
        snapshot = tuple(self._load() or [])
        self._snapshot.publish(snapshot)
        return snapshot

    def _load(self) -> Optional[List[NotificationItem]]:
        """Return stored notifications, or None when the slot could not be read."""
        result = self._store.read()
        if result.status is LoadStatus.FAILED:
            return None
        notifications: List[NotificationItem] = []
        for record in result.records:
            try:
                notifications.append(record_to_notification(record))
            except ValueError as exc:
                self._logger.warning("Skipping malformed notification %r: %s", record.get("id"), exc)
        return notifications

    def _persist(self, notifications: List[NotificationItem]) -> bool:
        if not self._store.save([notification_to_record(item) for item in notifications]):
            return False
        self._snapshot.publish(tuple(notifications))
        return True

    def _next_id(self) -> str:
        with self._id_lock:
            millis = int(self._clock().timestamp() * 1000)
            # Strictly increasing even when the clock stalls or steps back.
            millis = max(millis, self._last_id_millis + 1)
            self._last_id_millis = millis
        return f"{self._config.id_prefix}_{millis}_{uuid.uuid4().hex[:8]}"


_INSTANCE: Optional[NotificationCache] = None
_INSTANCE_LOCK = Lock()


def get_notification_cache(
    config: Optional[AppConfig] = None,
    storage: Optional[SlotStorage] = None,
) -> NotificationCache:
    """Return the process-wide notification cache, creating it on first use.

    *config* and *storage* only matter for the call that constructs the
    instance; later calls return the existing cache unchanged.
    """
    global _INSTANCE
    instance = _INSTANCE
    if instance is not None:
        return instance
    with _INSTANCE_LOCK:
        if _INSTANCE is None:
            app_config = config or get_app_config()
            _INSTANCE = NotificationCache(
                storage or build_slot_storage(app_config),
                app_config.notifications,
            )
            LOGGER.debug("Notification cache instance created")
        return _INSTANCE


def reset_notification_cache() -> None:
    """Forget the shared instance so the next access builds a fresh one."""
    global _INSTANCE
    with _INSTANCE_LOCK:
        _INSTANCE = None

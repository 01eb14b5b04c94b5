"""Hybrid lookup of a single report across the remote store and local history.

The remote store is authoritative while it still holds a record. Completed
reports eventually age out of it, after which the owner's local history is the
only copy, so a definitive remote miss falls back to the completed-report cache.

Updates:
    v0.1 - 2026-10-09 - Implemented remote-first resolution with local history fallback.
    v0.2 - 2026-10-11 - Added TTL item cache and fresh owner display names.
    v0.3 - 2026-10-18 - Added config-driven resolver construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from config.settings import AppConfig
from core.collaborators import RemoteStore, UserProfileService
from core.history import CompletedReportCache
from core.item_cache import ItemMemoryCache
from core.telemetry import emit_metric, log_span
from models.items import CompletedReport, LostFoundItem

LOGGER = logging.getLogger("lostfound.resolver")


class LookupSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class LookupResult:
    """Outcome of resolving one report id."""

    item_id: str
    source: LookupSource
    item: Optional[LostFoundItem] = None
    is_owner: bool = False
    owner_name: Optional[str] = None
    completed_report: Optional[CompletedReport] = None

    @property
    def found(self) -> bool:
        return self.source is not LookupSource.NOT_FOUND


_Resolved = Tuple[LookupSource, LostFoundItem, Optional[CompletedReport]]


class HybridLookupResolver:
    """Resolves "show me report X" requests remote first, then from history."""

    def __init__(
        self,
        remote: RemoteStore,
        history: CompletedReportCache,
        profiles: UserProfileService,
        item_cache: Optional[ItemMemoryCache[_Resolved]] = None,
    ) -> None:
        self._remote = remote
        self._history = history
        self._profiles = profiles
        self._item_cache = item_cache
        self._logger = LOGGER

    def resolve(self, item_id: str) -> LookupResult:
        """Return the best available view of *item_id*."""
        with log_span("resolver.resolve", id=item_id):
            resolved = self._item_cache.get(item_id) if self._item_cache is not None else None
            if resolved is None:
                resolved = self._lookup(item_id)
                if resolved is not None and self._item_cache is not None:
                    self._item_cache.set(item_id, resolved)

        if resolved is None:
            self._logger.info("Report %s not found remotely or in local history", item_id)
            emit_metric("resolver.lookup", source=LookupSource.NOT_FOUND.value)
            return LookupResult(item_id=item_id, source=LookupSource.NOT_FOUND)

        source, item, report = resolved
        emit_metric("resolver.lookup", source=source.value)
        if source is LookupSource.REMOTE:
            is_owner = self._is_current_user(item.user_id)
        else:
            # History is only ever written on the owner's own device.
            is_owner = True
        return LookupResult(
            item_id=item_id,
            source=source,
            item=item,
            is_owner=is_owner,
            owner_name=self._owner_name(item),
            completed_report=report,
        )

    def invalidate(self, item_id: str) -> None:
        """Forget any cached resolution of *item_id*."""
        if self._item_cache is not None:
            self._item_cache.invalidate(item_id)

    def _lookup(self, item_id: str) -> Optional[_Resolved]:
        remote_item = self._fetch_remote(item_id)
        if remote_item is not None:
            self._logger.debug("Report %s loaded from remote store", item_id)
            return LookupSource.REMOTE, remote_item, None

        report = self._history.get_by_id(item_id)
        if report is not None:
            self._logger.debug("Report %s loaded from local history", item_id)
            return LookupSource.LOCAL, report.item.as_completed(), report
        return None

    def _fetch_remote(self, item_id: str) -> Optional[LostFoundItem]:
        try:
            return self._remote.get_item(item_id)
        except Exception as exc:
            self._logger.warning(
                "Remote lookup for %s failed (%s); checking local history.", item_id, exc
            )
            return None

    def _is_current_user(self, user_id: str) -> bool:
        try:
            current = self._remote.current_user_id()
        except Exception as exc:
            self._logger.warning("Unable to determine current user (%s); treating as guest.", exc)
            return False
        return current is not None and current == user_id

    def _owner_name(self, item: LostFoundItem) -> Optional[str]:
        historical = item.user_name or None
        if not item.user_id:
            return historical
        try:
            name = self._profiles.get_display_name(item.user_id)
        except Exception as exc:
            self._logger.warning(
                "Failed to fetch display name for %s (%s); using historical name.", item.user_id, exc
            )
            return historical
        return name or historical


def build_resolver(
    config: AppConfig,
    remote: RemoteStore,
    history: CompletedReportCache,
    profiles: UserProfileService,
) -> HybridLookupResolver:
    """Construct a resolver whose item cache follows ``lookup.item_cache_ttl_seconds``."""
    ttl = config.lookup.item_cache_ttl_seconds
    item_cache: Optional[ItemMemoryCache[_Resolved]] = ItemMemoryCache(ttl) if ttl > 0 else None
    if item_cache is None:
        LOGGER.debug("Item cache disabled; every lookup queries the remote store.")
    return HybridLookupResolver(remote, history, profiles, item_cache=item_cache)

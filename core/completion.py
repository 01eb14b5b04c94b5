"""Marks a report as completed and mirrors it into local history.

The local copy is written before the remote flag changes, so the report stays
visible on the owner's device once the remote store later drops it.

Updates:
    v0.1 - 2026-10-10 - Added owner-checked completion flow with local mirroring.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.collaborators import RemoteStore
from core.exceptions import CompletionError, RemoteStoreError
from core.history import CompletedReportCache
from core.resolver import HybridLookupResolver
from core.telemetry import emit_metric, log_span

LOGGER = logging.getLogger("lostfound.completion")


@dataclass(frozen=True, slots=True)
class CompletionResult:
    item_id: str
    success: bool
    saved_locally: bool = False
    error: Optional[str] = None


class ReportCompletionService:
    """Coordinates the remote "mark completed" mutation with the history cache."""

    def __init__(
        self,
        remote: RemoteStore,
        history: CompletedReportCache,
        resolver: Optional[HybridLookupResolver] = None,
    ) -> None:
        self._remote = remote
        self._history = history
        self._resolver = resolver
        self._logger = LOGGER

    def mark_completed(self, item_id: str) -> CompletionResult:
        """Complete *item_id* on behalf of the signed-in owner."""
        try:
            with log_span("completion.mark_completed", id=item_id):
                saved_locally = self._complete(item_id)
        except CompletionError as exc:
            self._logger.error("Error marking %s as completed: %s", item_id, exc)
            return CompletionResult(item_id=item_id, success=False, error=str(exc))
        finally:
            if self._resolver is not None:
                self._resolver.invalidate(item_id)

        emit_metric("completion.completed", saved_locally=saved_locally)
        return CompletionResult(item_id=item_id, success=True, saved_locally=saved_locally)

    def _complete(self, item_id: str) -> bool:
        try:
            user_id = self._remote.current_user_id()
            item = self._remote.get_item(item_id)
        except RemoteStoreError as exc:
            raise CompletionError(f"Unable to load report {item_id}: {exc}") from exc

        if not user_id:
            raise CompletionError("A signed-in user is required to complete a report.")
        if item is None:
            raise CompletionError(f"Report {item_id} does not exist in the remote store.")
        if item.user_id != user_id:
            raise CompletionError(f"User {user_id} does not own report {item_id}.")

        saved_locally = self._history.insert(item)
        if not saved_locally:
            self._logger.warning("Failed to save %s to local history; continuing.", item_id)

        try:
            self._remote.mark_completed(item_id)
        except RemoteStoreError as exc:
            raise CompletionError(f"Remote store rejected completion of {item_id}: {exc}") from exc

        self._logger.info("Report %s marked as completed", item_id)
        return saved_locally

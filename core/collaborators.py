"""Interfaces of the services this layer consumes but does not implement.

Updates:
    v0.1 - 2026-10-09 - Declared remote store and user profile protocols.
"""

from __future__ import annotations

from typing import Optional, Protocol

from models.items import LostFoundItem


class RemoteStore(Protocol):
    """Authoritative document store holding active reports.

    Implementations raise :class:`core.exceptions.RemoteStoreError` when a
    request fails; a record that does not exist is reported as ``None``.
    """

    def get_item(self, item_id: str) -> Optional[LostFoundItem]:
        ...

    def mark_completed(self, item_id: str) -> None:
        ...

    def current_user_id(self) -> Optional[str]:
        """Identity of the signed-in user, or None when signed out."""
        ...


class UserProfileService(Protocol):
    """Looks up the current display name of a user."""

    def get_display_name(self, user_id: str) -> str:
        ...

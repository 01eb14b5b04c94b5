"""Exception hierarchy for the lost-and-found persistence layer.

Errors are raised by storage backends and collaborators and caught at the
record-store and resolver boundaries, so callers of the caches only ever see
plain success flags.

Updates:
    v0.1 - 2026-10-05 - Defined error hierarchy for configuration, storage,
        remote lookup, profile lookup, and completion concerns.
    v0.2 - 2026-10-18 - Split undecodable slot contents out of storage errors.
"""

from __future__ import annotations


class LostFoundError(Exception):
    """Base class for all lost-and-found specific errors."""


class ConfigError(LostFoundError):
    """Raised when application configuration is missing or invalid."""


class StorageError(LostFoundError):
    """Raised when a durable storage slot cannot be read or written."""


class RemoteStoreError(LostFoundError):
    """Raised by remote store adapters when a request fails."""


class ProfileLookupError(LostFoundError):
    """Raised when a user profile display name cannot be fetched."""


class CompletionError(LostFoundError):
    """Raised when a report cannot be marked as completed."""


class HealthCheckError(LostFoundError):
    """Raised when a startup check finds an unusable configuration."""


class SlotDecodeError(StorageError):
    """Raised when a slot was read but its bytes are not valid UTF-8 text."""

"""Durable key-value slot backends for the on-device caches.

Each cache owns one named slot holding a single string value. Backends raise
:class:`StorageError` on I/O failure and :class:`SlotDecodeError` when the
stored bytes are not text; translating failures into success flags
is left to :mod:`core.record_store`.

Updates:
    v0.1 - 2026-10-05 - Added file-backed slots with atomic replacement.
    v0.2 - 2026-10-09 - Added Redis slots with lazy reconnection and an
        in-process fallback map.
    v0.3 - 2026-10-11 - Added storage directory override via environment.
    v0.4 - 2026-10-18 - Reported undecodable slot bytes as SlotDecodeError.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Protocol

import redis

from config.settings import AppConfig, RedisConfig
from core.exceptions import SlotDecodeError, StorageError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
STORAGE_DIR_ENV = "LOSTFOUND_STORAGE_DIR"

LOGGER = logging.getLogger("lostfound.storage")

_SLOT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class SlotStorage(Protocol):
    """Named-slot key-value storage."""

    def read(self, slot: str) -> Optional[str]:
        """Return the slot value, or None when the slot does not exist."""
        ...

    def write(self, slot: str, value: str) -> None:
        """Overwrite the slot with *value*."""
        ...

    def remove(self, slot: str) -> None:
        """Delete the slot; missing slots are ignored."""
        ...


def _validate_slot(slot: str) -> str:
    if not _SLOT_PATTERN.match(slot):
        raise StorageError(f"Invalid slot name: {slot!r}")
    return slot


class InMemorySlotStorage:
    """Process-local slots, lost when the process exits."""

    def __init__(self) -> None:
        self._slots: Dict[str, str] = {}
        self._lock = Lock()

    def read(self, slot: str) -> Optional[str]:
        with self._lock:
            return self._slots.get(_validate_slot(slot))

    def write(self, slot: str, value: str) -> None:
        with self._lock:
            self._slots[_validate_slot(slot)] = value

    def remove(self, slot: str) -> None:
        with self._lock:
            self._slots.pop(_validate_slot(slot), None)


class FileSlotStorage:
    """Stores each slot as ``<slot>.json`` inside a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._lock = Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, slot: str) -> Path:
        return self._directory / f"{_validate_slot(slot)}.json"

    def read(self, slot: str) -> Optional[str]:
        path = self.path_for(slot)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise SlotDecodeError(f"Slot {slot} at {path} holds non UTF-8 data: {exc}") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read slot {slot} at {path}: {exc}") from exc

    def write(self, slot: str, value: str) -> None:
        path = self.path_for(slot)
        with self._lock:
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                # Write beside the target, then swap it in so readers never see a partial file.
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{slot}.", suffix=".tmp", dir=str(self._directory)
                )
            except OSError as exc:
                raise StorageError(f"Unable to prepare slot {slot} in {self._directory}: {exc}") from exc

            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except OSError as exc:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    LOGGER.debug("Temporary slot file %s already gone.", tmp_name)
                raise StorageError(f"Unable to write slot {slot} at {path}: {exc}") from exc

    def remove(self, slot: str) -> None:
        path = self.path_for(slot)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as exc:
                raise StorageError(f"Unable to remove slot {slot} at {path}: {exc}") from exc


class RedisSlotStorage:
    """Adapter around Redis for slot storage with an in-process fallback."""

    def __init__(self, config: RedisConfig) -> None:
        self._host = config.host
        self._port = config.port
        self._db = config.db
        self._prefix = config.key_prefix
        self._socket_timeout = config.socket_timeout_seconds
        self._client: Optional[Any] = None
        self._fallback = InMemorySlotStorage()
        self._logger = logging.getLogger("lostfound.storage.redis")
        self._initialise_client()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def read(self, slot: str) -> Optional[str]:
        key = self._key(slot)
        if self._ensure_client():
            client = self._client
            try:
                payload = client.get(key)
            except redis.exceptions.RedisError as exc:
                self._logger.warning(
                    "Redis read failed (%s); falling back to in-process slots.", exc
                )
                self._client = None
            else:
                if payload is None:
                    return None
                try:
                    return payload.decode("utf-8") if isinstance(payload, bytes) else str(payload)
                except UnicodeDecodeError as exc:
                    raise SlotDecodeError(f"Slot {slot} holds non UTF-8 data: {exc}") from exc

        return self._fallback.read(slot)

    def write(self, slot: str, value: str) -> None:
        key = self._key(slot)
        if self._ensure_client():
            client = self._client
            try:
                client.set(key, value.encode("utf-8"))
                return
            except redis.exceptions.RedisError as exc:
                self._logger.warning(
                    "Redis write failed (%s); switching to in-process slots.", exc
                )
                self._client = None

        self._fallback.write(slot, value)

    def remove(self, slot: str) -> None:
        key = self._key(slot)
        if self._ensure_client():
            client = self._client
            try:
                client.delete(key)
                return
            except redis.exceptions.RedisError as exc:
                self._logger.warning(
                    "Redis delete failed (%s); removing slot from in-process store.", exc
                )
                self._client = None

        self._fallback.remove(slot)

    def _key(self, slot: str) -> str:
        return f"{self._prefix}{_validate_slot(slot)}"

    def _initialise_client(self) -> None:
        try:
            self._client = self._attempt_connect()
        except redis.exceptions.RedisError as exc:
            self._logger.error(
                "Redis connection failed during initialisation (%s); using in-process slots.",
                exc,
            )
            self._client = None

    def _attempt_connect(self) -> Any:
        client = redis.Redis(
            host=self._host,
            port=self._port,
            db=self._db,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
        )
        client.ping()
        return client

    def _ensure_client(self) -> bool:
        """Ensure a live Redis client is available, reconnecting if needed."""
        if self._client is None:
            try:
                self._client = self._attempt_connect()
            except redis.exceptions.RedisError as exc:
                self._logger.debug("Redis reconnect attempt failed: %s", exc)
                self._client = None
                return False
        return True


def resolve_storage_directory(config: AppConfig) -> Path:
    """Return the file backend directory, honouring the environment override."""
    env_value = os.getenv(STORAGE_DIR_ENV)
    directory = Path(env_value) if env_value else Path(config.storage.directory)
    if not directory.is_absolute():
        directory = PROJECT_ROOT / directory
    return directory


def build_slot_storage(config: AppConfig) -> SlotStorage:
    """Construct the slot backend selected in configuration."""
    backend = config.storage.backend
    if backend == "redis":
        return RedisSlotStorage(config.storage.redis)
    if backend == "memory":
        return InMemorySlotStorage()
    return FileSlotStorage(resolve_storage_directory(config))

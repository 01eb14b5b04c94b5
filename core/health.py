"""Startup diagnostics for the configured storage backend.

Updates:
    v0.1 - 2026-10-10 - Added checks for the file directory and Redis connectivity.
    v0.2 - 2026-10-18 - Closed the Redis probe client after pinging.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import List

import redis

from config.settings import AppConfig
from core.exceptions import HealthCheckError
from core.storage import resolve_storage_directory

LOGGER = logging.getLogger("lostfound.health")


def run_startup_checks(config: AppConfig) -> List[str]:
    """Validate storage prerequisites; return warnings when falling back."""
    backend = config.storage.backend
    if backend == "file":
        return _check_directory(config)
    if backend == "redis":
        return _check_redis(config)
    return ["memory storage backend selected; caches will not survive a restart."]


def _check_directory(config: AppConfig) -> List[str]:
    directory = resolve_storage_directory(config)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, probe = tempfile.mkstemp(prefix=".health.", dir=str(directory))
        os.close(fd)
        os.unlink(probe)
    except OSError as exc:
        raise HealthCheckError(f"Storage directory {directory} is not writable: {exc}") from exc
    return []


def _check_redis(config: AppConfig) -> List[str]:
    redis_cfg = config.storage.redis
    client = redis.Redis(
        host=redis_cfg.host,
        port=redis_cfg.port,
        db=redis_cfg.db,
        socket_timeout=1,
        socket_connect_timeout=1,
    )
    try:
        client.ping()
    except redis.exceptions.RedisError as exc:
        LOGGER.warning("Redis connectivity check failed (%s); using in-process slots.", exc)
        return [
            "redis unavailable; cache slots will be kept in process memory only.",
        ]
    finally:
        client.close()
    return []

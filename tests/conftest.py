"""Shared fixtures for cache tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest

from core.notifications import reset_notification_cache


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 1, 8, 30, tzinfo=timezone.utc))


@pytest.fixture(autouse=True)
def _fresh_notification_singleton() -> Iterator[None]:
    reset_notification_cache()
    yield
    reset_notification_cache()

"""Tests for the demo seeding script."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.settings import AppConfig, get_app_config, save_app_config
from core.history import CompletedReportCache
from core.notifications import get_notification_cache
from core.storage import FileSlotStorage
from models.notifications import NotificationType
from scripts.seed_cache import main as seed_main


def test_seed_populates_history_and_inbox(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOSTFOUND_STORAGE_DIR", str(tmp_path / "slots"))
    config_path = tmp_path / "config.json"
    save_app_config(AppConfig(version="test"), config_path)

    assert seed_main(["--config", str(config_path)]) == 0

    config = get_app_config(config_path)
    history = CompletedReportCache(FileSlotStorage(tmp_path / "slots"), config.history)
    assert history.count() == 2
    assert all(report.item.is_completed for report in history.snapshot)

    inbox = get_notification_cache().snapshot
    assert len(inbox) == 2
    assert {item.type for item in inbox} == {NotificationType.COMPLETED_REPORT}
    assert {item.item_id for item in inbox} == {report.id for report in history.snapshot}

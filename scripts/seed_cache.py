"""Populate the local caches with sample lost-and-found data for demos.

Updates:
    v0.1 - 2026-10-11 - Added seeding script for completed history and inbox entries.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable
from uuid import uuid4

from config.settings import get_app_config, resolve_config_path
from core.exceptions import LostFoundError
from core.history import CompletedReportCache
from core.notifications import get_notification_cache
from core.storage import build_slot_storage
from models.items import Category, ItemType, LostFoundItem
from models.notifications import NotificationType

LOGGER = logging.getLogger("lostfound.seed")


def seed_caches(config_path: Path | None = None) -> None:
    """Insert sample completed reports and notifications into the configured slots."""
    config = get_app_config(config_path)
    storage = build_slot_storage(config)
    history = CompletedReportCache(storage, config.history)
    notifications = get_notification_cache(config, storage)

    seed_id = uuid4().hex[:8]
    owner = f"demo-user-{seed_id}"
    created = datetime.now(timezone.utc) - timedelta(days=3)

    reports: Iterable[LostFoundItem] = [
        LostFoundItem(
            id=f"report-{seed_id}-1",
            user_id=owner,
            item_name="Black umbrella",
            type=ItemType.LOST,
            category=Category.OTHER,
            location="Perpustakaan Pusat",
            description="Folding umbrella with a wooden handle.",
            created_at=created,
        ),
        LostFoundItem(
            id=f"report-{seed_id}-2",
            user_id=owner,
            item_name="Student ID card",
            type=ItemType.FOUND,
            category=Category.DOCUMENTS,
            location="Kantin Utama",
            created_at=created,
        ),
    ]

    for report in reports:
        LOGGER.info("Recording completed report %s", report.id)
        history.insert(report)

    for report in reports:
        notifications.append(
            title=f"Report completed: {report.item_name}",
            body=f"\"{report.item_name}\" was returned to its owner.",
            type=NotificationType.COMPLETED_REPORT.value,
            item_id=report.id,
        )

    LOGGER.info("Seed operation completed. Use the CLI to inspect the entries.")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the local caches with demo data.")
    parser.add_argument("--config", type=Path, help="Optional path to config.json.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    try:
        config_path = resolve_config_path(args.config) if args.config else None
        seed_caches(config_path)
    except LostFoundError as exc:
        LOGGER.error("Seeding failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

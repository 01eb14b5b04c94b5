"""Maintenance CLI for the on-device lost-and-found caches.

Updates:
    v0.1 - 2026-10-10 - Added history and notification inspection commands with
        configuration loading and logging setup.
    v0.2 - 2026-10-11 - Added startup health checks with warning surface.
    v0.3 - 2026-10-12 - Loaded environment variables from .env during startup.
"""

from __future__ import annotations

import argparse
import logging
import logging.config
from pathlib import Path
from typing import Callable, Dict, Optional

from dotenv import load_dotenv

from config.settings import AppConfig, get_app_config, resolve_config_path
from core.exceptions import HealthCheckError, LostFoundError
from core.health import run_startup_checks
from core.history import CompletedReportCache
from core.notifications import NotificationCache, get_notification_cache
from core.storage import SlotStorage, build_slot_storage
from core.telemetry import metrics_snapshot

LOGGER = logging.getLogger("lostfound.cli")


def setup_logging(logging_config: Optional[Path] = None, level: str = "INFO") -> None:
    """Configure Python logging using the provided configuration file."""
    config_path = logging_config or Path(__file__).parent / "config" / "logging.conf"
    if not config_path.exists():
        logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
        logging.getLogger("lostfound").warning(
            "Logging configuration %s not found; using basicConfig.", config_path
        )
        return
    logging.config.fileConfig(config_path, disable_existing_loggers=False)
    logging.getLogger("lostfound").setLevel(level.upper())


def _print(line: str) -> None:
    print(line)


def run_history_command(
    history: CompletedReportCache,
    action: str,
    item_id: Optional[str] = None,
    out: Callable[[str], None] = _print,
) -> int:
    """Execute a ``history`` sub-command and return a process exit code."""
    if action == "list":
        for report in history.snapshot:
            item = report.item
            out(f"{item.id}\t{report.completed_at_formatted}\t{item.type.value}\t{item.item_name}")
        out(f"{history.count()} completed reports")
        return 0
    if action == "delete":
        if not item_id:
            LOGGER.error("history delete requires an item id")
            return 2
        return 0 if history.delete(item_id) else 1
    if action == "clear":
        return 0 if history.clear() else 1
    LOGGER.error("Unknown history action: %s", action)
    return 2


def run_notifications_command(
    notifications: NotificationCache,
    action: str,
    args: argparse.Namespace,
    out: Callable[[str], None] = _print,
) -> int:
    """Execute a ``notifications`` sub-command and return a process exit code."""
    if action == "list":
        for item in notifications.snapshot:
            marker = " " if item.read else "*"
            moment = item.timestamp.to_datetime().isoformat(timespec="seconds")
            out(f"{marker} {item.id}\t{moment}\t{item.type.value}\t{item.title}")
        out(f"{notifications.unread_count()} unread of {len(notifications.snapshot)}")
        return 0

    handlers: Dict[str, Callable[[], bool]] = {
        "append": lambda: notifications.append(
            args.title, args.body, type=args.type, item_id=args.item_id
        ),
        "mark-read": lambda: notifications.mark_read(args.id),
        "mark-all-read": notifications.mark_all_read,
        "delete": lambda: notifications.delete(args.id),
        "delete-read": notifications.delete_read,
        "cleanup": lambda: notifications.cleanup_expired(args.days),
        "clear": notifications.clear,
    }
    handler = handlers.get(action)
    if handler is None:
        LOGGER.error("Unknown notifications action: %s", action)
        return 2
    return 0 if handler() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lost-and-found local cache maintenance.")
    parser.add_argument("--config", type=Path, help="Path to configuration file.")
    parser.add_argument("--logging-config", type=Path, help="Path to logging configuration.")
    commands = parser.add_subparsers(dest="command", required=True)

    history = commands.add_parser("history", help="Inspect completed-report history.")
    history.add_argument("action", choices=["list", "delete", "clear"])
    history.add_argument("item_id", nargs="?", help="Report id for delete.")

    notifications = commands.add_parser("notifications", help="Inspect the notification inbox.")
    actions = notifications.add_subparsers(dest="action", required=True)
    actions.add_parser("list")
    append = actions.add_parser("append")
    append.add_argument("--title", required=True)
    append.add_argument("--body", required=True)
    append.add_argument("--type", default="GENERAL")
    append.add_argument("--item-id", dest="item_id")
    for name in ("mark-read", "delete"):
        single = actions.add_parser(name)
        single.add_argument("id")
    actions.add_parser("mark-all-read")
    actions.add_parser("delete-read")
    cleanup = actions.add_parser("cleanup")
    cleanup.add_argument("--days", type=int, default=None, help="Expiry horizon in days.")
    actions.add_parser("clear")

    commands.add_parser("stats", help="Print cache sizes and metric totals.")
    return parser


def dispatch(
    args: argparse.Namespace,
    config: AppConfig,
    storage: SlotStorage,
    out: Callable[[str], None] = _print,
) -> int:
    """Run the parsed command against caches built on *storage*."""
    if args.command == "history":
        history = CompletedReportCache(storage, config.history)
        return run_history_command(history, args.action, args.item_id, out)

    notifications = get_notification_cache(config, storage)
    if args.command == "notifications":
        return run_notifications_command(notifications, args.action, args, out)

    history = CompletedReportCache(storage, config.history)
    out(f"history: {history.count()} reports")
    out(f"notifications: {len(notifications.snapshot)} stored, {notifications.unread_count()} unread")
    for name, value in sorted(metrics_snapshot().items()):
        out(f"metric {name}: {value:g}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Parse CLI arguments and dispatch the selected command."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config_path = resolve_config_path(args.config) if args.config else None
        config = get_app_config(config_path)
        setup_logging(args.logging_config, config.telemetry.log_level)
        for warning in run_startup_checks(config):
            LOGGER.warning("Startup check: %s", warning)
    except HealthCheckError as exc:
        logging.basicConfig(level=logging.ERROR)
        LOGGER.error("Startup health check failed: %s", exc)
        return 1
    except LostFoundError as exc:
        logging.basicConfig(level=logging.ERROR)
        LOGGER.error("Startup failed: %s", exc)
        return 1

    return dispatch(args, config, build_slot_storage(config))


if __name__ == "__main__":
    raise SystemExit(main())

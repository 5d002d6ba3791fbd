from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import orjson

from .client import DatabaseApi, TimelineStore
from .client.queries import CREATE_TABLE
from .client.store import UNCHANGED
from .config import get_settings
from .data import ConnectionManager
from .domain import MilestoneKind
from .errors import DatabaseConnectionError, TenderTrackError
from .logging import configure_logging

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid ISO date: {value}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tender Track command line interface.")
    parser.add_argument("--log-level", default="INFO")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Start the query gateway and static file host.")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument("--static-dir", type=Path, default=None)

    subparsers.add_parser("init-db", help="Create the timelines table if it does not exist.")

    for name, help_text in (
        ("timelines", "List vendor timelines, most recently updated first."),
        ("notifications", "List derived milestone notifications."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--url", default="http://127.0.0.1:8080")
        sub.add_argument("--json", action="store_true", dest="as_json")

    add_parser = subparsers.add_parser("add-vendor", help="Register a new vendor.")
    add_parser.add_argument("--url", default="http://127.0.0.1:8080")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--email", required=True)
    add_parser.add_argument("--media", action="store_true")
    add_parser.add_argument("--ai", action="store_true")

    update_parser = subparsers.add_parser("update", help="Set the state of one milestone.")
    update_parser.add_argument("--url", default="http://127.0.0.1:8080")
    update_parser.add_argument("company_id")
    update_parser.add_argument("milestone", choices=[kind.value for kind in MilestoneKind])
    dates = update_parser.add_mutually_exclusive_group()
    dates.add_argument("--date", type=_parse_date, default=UNCHANGED)
    dates.add_argument("--clear-date", action="store_const", const=None, default=UNCHANGED, dest="date")
    update_parser.add_argument("--incomplete", action="store_true", help="Clear the completed flag.")

    return parser


def _print_json(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def _show_timelines(store: TimelineStore, as_json: bool) -> None:
    if as_json:
        _print_json([timeline.to_record() for timeline in store.timelines])
        return
    for timeline in store.timelines:
        print(f"{timeline.company_id:>14}  {timeline.company_name}")
        for kind in MilestoneKind:
            milestone = timeline.milestone(kind)
            mark = "x" if milestone.is_completed else " "
            print(f"{'':16}[{mark}] {kind.label:<15} {_format_date(milestone.date)}")


def _show_notifications(store: TimelineStore, as_json: bool) -> None:
    if as_json:
        _print_json([notification.to_record() for notification in store.notifications])
        return
    for notification in store.notifications:
        print(f"{notification.severity.name:<6} {notification.kind.value:<15} {notification.message}")


def _run_client_command(args: argparse.Namespace) -> int:
    with DatabaseApi(args.url) as api:
        store = TimelineStore(api)
        if args.command == "add-vendor":
            company_id = store.create(args.name, args.email, {"media": args.media, "ai": args.ai})
            print(f"Added {args.name} as {company_id}")
            return 0

        snapshot = store.fetch()
        if snapshot.error:
            logger.error("Failed to load timelines: %s", snapshot.error)
            return 1
        if args.command == "update":
            store.mark_milestone(
                args.company_id,
                MilestoneKind(args.milestone),
                completed=not args.incomplete,
                date=args.date,
            )
            _show_timelines(store, as_json=False)
        elif args.command == "timelines":
            _show_timelines(store, args.as_json)
        else:
            _show_notifications(store, args.as_json)
    return 0


def _init_db() -> int:
    settings = get_settings().database
    if not settings.is_configured:
        logger.error("Missing database settings: %s", ", ".join(settings.missing_env_vars))
        return 1
    manager = ConnectionManager.from_settings(settings, max_retries=0)
    if not manager.connect():
        raise manager.connect_error or DatabaseConnectionError("Could not connect to the database")
    try:
        manager.execute(CREATE_TABLE)
        logger.info("timelines table is ready")
    finally:
        manager.close()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    logger.info("Tender Track CLI starting")

    if args.command == "serve":
        from .services.http import run_server

        settings = get_settings().database
        if not settings.is_configured:
            logger.warning("Missing database settings: %s", ", ".join(settings.missing_env_vars))
        run_server(
            ConnectionManager.from_settings(settings),
            host=args.host,
            port=args.port,
            static_dir=args.static_dir,
        )
        return 0
    try:
        if args.command == "init-db":
            return _init_db()
        return _run_client_command(args)
    except TenderTrackError as exc:
        logger.error("%s", exc.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())

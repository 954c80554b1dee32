"""Command-line entry point for inspecting and driving the notification store."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from .config import Config, load_config
from .errors import NotifSyncError
from .services import NotificationService, open_database
from .source import StaticPageSource


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def run_command(args, config: Config) -> int:
    """Open the store, run one command and close the store again."""
    db = await open_database(args.database or config.store.database_path)
    try:
        service = NotificationService(db, config)

        if args.command == "stats":
            stats = await service.stats()
            _print_json({**asdict(stats), "total": stats.total, "open": stats.open})

        elif args.command == "mark":
            response = await service.mark_result(
                {
                    "notification_id": args.notification_id,
                    "status": args.status,
                    "reply_content": args.reply,
                }
            )
            _print_json(asdict(response))

        elif args.command == "auto-skip":
            count = await service.auto_skip(args.threshold)
            _print_json({"auto_skipped": count})

        elif args.command == "scan":
            source = StaticPageSource.from_json(args.pages)
            work = await service.get_pending_work(
                {
                    "max_pages": args.max_pages,
                    "max_results": args.max_results,
                    "since_unix": args.since_unix,
                    "full_scan": args.full_scan,
                },
                source=source,
            )
            _print_json(work.to_dict())

        return 0
    finally:
        await db.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Notification reconciliation store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s stats                              # Per-status counts
  %(prog)s mark 1234567890 replied --reply hi # Report an outcome
  %(prog)s auto-skip --threshold 5            # Skip exhausted retries
  %(prog)s scan pages.json --full-scan        # Reconcile against a feed dump
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--database",
        default=None,
        help="Override the SQLite database path",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Show per-status counts and last scan time")

    mark_parser = subparsers.add_parser("mark", help="Report the outcome for a notification")
    mark_parser.add_argument("notification_id")
    mark_parser.add_argument("status", help="replied, skipped, retry or deleted_check")
    mark_parser.add_argument("--reply", default="", help="Reply content or reason")

    skip_parser = subparsers.add_parser("auto-skip", help="Skip retries over the limit")
    skip_parser.add_argument("--threshold", type=int, default=None)

    scan_parser = subparsers.add_parser("scan", help="Reconcile against pages from a JSON file")
    scan_parser.add_argument("pages", help="JSON file with a list of pages")
    scan_parser.add_argument("--max-pages", type=int, default=None)
    scan_parser.add_argument("--max-results", type=int, default=None)
    scan_parser.add_argument("--since-unix", type=int, default=None)
    scan_parser.add_argument("--full-scan", action="store_true")

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if args.config:
            logger.info("Loading configuration from %s", args.config)
            config = load_config(args.config)
        else:
            config = Config()
        return asyncio.run(run_command(args, config))
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except NotifSyncError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())

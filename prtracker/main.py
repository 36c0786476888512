"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from prtracker.config import Config, config
from prtracker.exceptions import ConfigurationError, PRTrackerError
from prtracker.logging_conf import setup_logging
from prtracker.models import PRRecord, RequesterName, is_known_requester
from prtracker.service import (
    PRService,
    dashboard_stats,
    export_csv,
    filter_records,
    format_pr_number,
    new_record,
)
from prtracker.store.factory import build_store
from prtracker.store.local import LocalRecordStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="PR number tracker")
    parser.add_argument(
        "--script-url",
        default=None,
        help="Remote endpoint URL (default: SCRIPT_URL from the environment)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help=f"Directory for local storage (default: {config.DATA_DIR})",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List records, newest first")
    list_cmd.add_argument("--search", default="", help="Match PR number, vendor or description")
    list_cmd.add_argument("--user", default=None, help="Only this requester")
    list_cmd.add_argument("--month", default="", help="Only this month (YYYY-MM)")

    add_cmd = sub.add_parser("add", help="Add a new PR record")
    add_cmd.add_argument("--year", default=str(date.today().year), help="PR year")
    add_cmd.add_argument(
        "--sequence",
        default=None,
        help="Sequence number (default: next available for the year)",
    )
    add_cmd.add_argument("--date", default=date.today().isoformat(), help="YYYY-MM-DD")
    add_cmd.add_argument("--requested-by", required=True, help="Requester name")
    add_cmd.add_argument("--vendor", default="")
    add_cmd.add_argument("--description", default="")

    update_cmd = sub.add_parser("update", help="Edit an existing record")
    update_cmd.add_argument("id", help="Record id")
    update_cmd.add_argument("--pr-number", default=None)
    update_cmd.add_argument("--date", default=None)
    update_cmd.add_argument("--requested-by", default=None)
    update_cmd.add_argument("--vendor", default=None)
    update_cmd.add_argument("--description", default=None)

    delete_cmd = sub.add_parser("delete", help="Delete a record by id")
    delete_cmd.add_argument("id", help="Record id")

    check_cmd = sub.add_parser("check", help="Check whether a PR number is free")
    check_cmd.add_argument("pr_number")

    next_cmd = sub.add_parser("next", help="Show the next proposed PR number")
    next_cmd.add_argument("--year", default=str(date.today().year))

    sub.add_parser("stats", help="Show dashboard figures")

    export_cmd = sub.add_parser("export", help="Export records as CSV")
    export_cmd.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Output file (default: pr_export_{date.today().isoformat()}.csv, '-' for stdout)",
    )

    sub.add_parser("seed", help="Write a sample record if local storage is empty")

    return parser.parse_args(argv)


def _print_record(record: PRRecord) -> None:
    print(
        f"{record.pr_number:<20} {record.date:<10}  {record.requested_by:<10} "
        f"{record.vendor:<20} {record.description}  [{record.id}]"
    )


async def _find(service: PRService, record_id: str) -> PRRecord:
    for record in await service.list_all():
        if record.id == record_id:
            return record
    raise PRTrackerError(f"No record with id {record_id}")


async def run_command(args: argparse.Namespace, cfg: Config) -> int:
    """Run one subcommand against the configured store."""
    async with build_store(cfg) as store:
        service = PRService(store)

        if args.command == "list":
            records = filter_records(await service.list_records(), args.search, args.user, args.month)
            for record in records:
                _print_record(record)
            logger.info(f"{len(records)} record(s)")

        elif args.command == "add":
            sequence = args.sequence or await service.next_sequence(args.year)
            if not is_known_requester(args.requested_by):
                logger.warning(
                    f"'{args.requested_by}' is not one of {', '.join(r.value for r in RequesterName)}"
                )
            record = new_record(
                pr_number=format_pr_number(args.year, sequence),
                pr_date=args.date,
                requested_by=args.requested_by,
                vendor=args.vendor,
                description=args.description,
            )
            await service.save(record)
            print(f"Saved {record.pr_number} [{record.id}]")

        elif args.command == "update":
            current = await _find(service, args.id)
            changes = {
                "pr_number": args.pr_number,
                "date": args.date,
                "requested_by": args.requested_by,
                "vendor": args.vendor,
                "description": args.description,
            }
            record = current.model_copy(update={k: v for k, v in changes.items() if v is not None})
            await service.update(record)
            print(f"Updated {record.pr_number} [{record.id}]")

        elif args.command == "delete":
            await service.delete(args.id)
            print(f"Deleted {args.id}")

        elif args.command == "check":
            result = await service.check_availability(args.pr_number)
            if result.available:
                print(f"{args.pr_number.strip()} is available")
            else:
                print(f"{args.pr_number.strip()} is already used:")
                _print_record(result.record)
                return 2

        elif args.command == "next":
            print(await service.propose_pr_number(args.year))

        elif args.command == "stats":
            stats = dashboard_stats(await service.list_all())
            print(f"Total PRs used: {stats.total_used}")
            print(f"This month:     {stats.this_month}")
            print(f"Top requester:  {stats.top_user}")

        elif args.command == "export":
            content = export_csv(await service.list_records())
            if args.output is not None and str(args.output) == "-":
                sys.stdout.write(content)
            else:
                output = args.output or Path(f"pr_export_{date.today().isoformat()}.csv")
                output.write_text(content, encoding="utf-8")
                print(f"Exported to {output}")

        elif args.command == "seed":
            if not isinstance(store, LocalRecordStore):
                logger.warning("Seeding only applies to local storage")
            elif await store.seed_if_empty():
                print(f"Seeded {store.path}")
            else:
                print("Local storage already has data")

    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else None)

    overrides = {}
    if args.script_url is not None:
        overrides["SCRIPT_URL"] = args.script_url
    if args.data_dir is not None:
        overrides["DATA_DIR"] = args.data_dir
    cfg = Config(**overrides)

    try:
        cfg.validate()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run_command(args, cfg)))
    except PRTrackerError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()

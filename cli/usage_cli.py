#!/usr/bin/env python3
"""Usage Stats CLI

Command-line tool for the usage statistics store:
- Initialize the schema on the configured backend
- Check how a usage report CSV will be read, without importing
- Import usage report CSV exports
- Create dashboard login accounts
- Print per-user rows and per-day summaries

Usage:
    usage-stats init
    usage-stats validate <csv_file>
    usage-stats import <csv_file> [<csv_file> ...]
    usage-stats create-account <email> --password <password> [--name NAME]
    usage-stats stats [--start YYYY-MM-DD] [--end YYYY-MM-DD] [--email TEXT]
    usage-stats summary [--start YYYY-MM-DD] [--end YYYY-MM-DD]

Examples:
    usage-stats import ~/downloads/users_logs_1705276800000.csv
    usage-stats stats --start 2024-01-01 --email kyle
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from config import ConfigError, get_config
from reports.csv_parser import inspect_header, parse_usage_csv, split_csv_line
from reports.importer import import_csv_file
from services.usage_aggregation import UsageAggregationService, UsageFilters
from storage.database import DatabaseError, close_database, get_backend, init_database
from storage.repositories import AuthRepository


async def _init_schema() -> bool:
    ready = await init_database()
    if not ready:
        info = get_backend().describe()
        print(f"⚠ Schema init timed out on {info['backend']} ({info.get('location', '')})")
    return ready


async def cmd_init(args):
    """Create tables and indexes if missing."""
    if not await _init_schema():
        return 1
    info = get_backend().describe()
    print(f"✓ Schema ready on {info['backend']} ({info.get('location', '')})")
    return 0


async def cmd_validate(args):
    """Show the column mapping and report date for a CSV, without importing."""
    csv_path = Path(args.file)
    if not csv_path.exists():
        print(f"❌ File not found: {csv_path}")
        return 1

    content = csv_path.read_text(encoding="utf-8-sig")
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        print(f"❌ {csv_path.name}: file is empty")
        return 1

    layout = inspect_header(split_csv_line(lines[0]), filename=csv_path.name)
    records = parse_usage_csv(content, filename=csv_path.name)

    print(f"\n{'='*60}")
    if records:
        print("✅ VALID - Ready for import")
    else:
        print("❌ INVALID - No importable rows")
    print(f"{'='*60}")
    print(f"  Report date:      {layout.report_date} (from {layout.date_source})")
    print(f"  Records:          {len(records):,}")

    print("\nMapped columns:")
    for field_name, index in sorted(layout.column_map.items(), key=lambda item: item[1]):
        print(f"  ✓ {field_name} <- column {index + 1}")

    if not layout.has_email_column:
        print("\n❌ MISSING REQUIRED:\n  ✗ user email column")

    return 0 if records else 1


async def cmd_import(args):
    """Import one or more usage report CSV files."""
    if not await _init_schema():
        return 1
    failed = False

    for csv_path in args.files:
        result = await import_csv_file(csv_path)

        if not result.success:
            print(f"❌ {csv_path}: {result.error_message}")
            failed = True
            continue

        print(f"\n{'='*60}")
        print(f"✅ {result.filename}")
        print(f"{'='*60}")
        print(f"  Report date:      {result.report_date}")
        print(f"  Total records:    {result.total_records:,}")
        print(f"  Inserted:         {result.inserted_count:,}")
        print(f"  Skipped:          {result.skipped_count:,}")

        errors = result.error_messages()
        if errors:
            print(f"\n  Errors ({len(result.errors) + result.errors_truncated}):")
            for err in errors:
                print(f"    - {err}")

    return 1 if failed else 0


async def cmd_create_account(args):
    """Create a dashboard login if the email is not registered."""
    if not await _init_schema():
        return 1
    created = await AuthRepository().create_account(args.email, args.password, args.name)
    if created:
        print(f"✓ Created account {args.email}")
    else:
        print(f"Account {args.email} already exists, left unchanged")
    return 0


async def cmd_stats(args):
    """Print per-(user, date) rows."""
    if not await _init_schema():
        return 1
    filters = UsageFilters(start_date=args.start, end_date=args.end, email=args.email)
    rows = await UsageAggregationService().get_detail_rows(filters)

    if not rows:
        print("No usage data for the selected filters")
        return 0

    print(f"{'Date':<12} {'Email':<36} {'Total':>8} {'Sent':>8} {'Recv':>8} {'Edited':>7} {'Viewed':>7}")
    print("-" * 92)
    for row in rows:
        print(
            f"{row.date:<12} {row.email:<36} {row.total_emails:>8,} {row.emails_sent:>8,} "
            f"{row.emails_received:>8,} {row.files_edited:>7,} {row.files_viewed:>7,}"
        )
    print(f"\n{len(rows)} rows")
    return 0


async def cmd_summary(args):
    """Print per-date totals across all users."""
    if not await _init_schema():
        return 1
    filters = UsageFilters(start_date=args.start, end_date=args.end)
    rows = await UsageAggregationService().get_daily_summary(filters)

    if not rows:
        print("No usage data for the selected dates")
        return 0

    print(f"{'Date':<12} {'Users':>6} {'Total':>9} {'Sent':>9} {'Recv':>9} {'Edited':>8} {'Viewed':>8}")
    print("-" * 68)
    for row in rows:
        print(
            f"{row.date:<12} {row.total_users:>6} {row.total_emails:>9,} {row.total_sent:>9,} "
            f"{row.total_received:>9,} {row.total_files_edited:>8,} {row.total_files_viewed:>8,}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usage-stats",
        description="Workspace usage statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init                                Create the schema
  %(prog)s validate users_logs_1705276800000.csv Check a usage export
  %(prog)s import users_logs_1705276800000.csv Import a usage export
  %(prog)s create-account admin@example.com --password secret
  %(prog)s stats --start 2024-01-01 --email kyle
  %(prog)s summary --start 2024-01-01 --end 2024-01-31
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Init command
    init_parser = subparsers.add_parser("init", help="Create tables and indexes")
    init_parser.set_defaults(func=cmd_init)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check a CSV without importing")
    validate_parser.add_argument("file", help="Path to CSV file")
    validate_parser.set_defaults(func=cmd_validate)

    # Import command
    import_parser = subparsers.add_parser("import", help="Import usage report CSV files")
    import_parser.add_argument("files", nargs="+", help="Path(s) to CSV files")
    import_parser.set_defaults(func=cmd_import)

    # Create account command
    account_parser = subparsers.add_parser("create-account", help="Create a dashboard login")
    account_parser.add_argument("email", help="Login email")
    account_parser.add_argument("--password", required=True, help="Login password")
    account_parser.add_argument("--name", help="Display name (default: email local part)")
    account_parser.set_defaults(func=cmd_create_account)

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Per-user daily rows")
    stats_parser.add_argument("--start", help="First date (YYYY-MM-DD, inclusive)")
    stats_parser.add_argument("--end", help="Last date (YYYY-MM-DD, inclusive)")
    stats_parser.add_argument("--email", help="Case-insensitive email substring")
    stats_parser.set_defaults(func=cmd_stats)

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Per-date totals")
    summary_parser.add_argument("--start", help="First date (YYYY-MM-DD, inclusive)")
    summary_parser.add_argument("--end", help="Last date (YYYY-MM-DD, inclusive)")
    summary_parser.set_defaults(func=cmd_summary)

    return parser


async def _run(args) -> int:
    try:
        return await args.func(args)
    finally:
        close_database()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        config = get_config()
    except ConfigError as e:
        print(f"❌ {e}")
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(_run(args))
    except DatabaseError as e:
        print(f"❌ Database error ({e.backend}): {e.message}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()

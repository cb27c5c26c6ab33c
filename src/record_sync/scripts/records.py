#!/usr/bin/env python3
"""
Record Inspector

Shows how the sync engine sees a table: the field kind of every column, or
the records matching a predicate.

Usage:
    record-sync columns GHSNV
    record-sync query GHSNV --where "SampleId = 'A09090101'"

Exit codes:
    0 - Command completed
    1 - Command failed (configuration, schema or database error)
"""

import argparse
import logging
import sys
from typing import Optional

from record_sync.config import load_config
from record_sync.exceptions import RecordSyncError
from record_sync.sync.manager import RecordSyncManager


def _console_logger(level: str) -> logging.Logger:
    """Create a logger that prints bare messages to the console."""
    console_logger = logging.getLogger("record_sync.cli")
    console_logger.setLevel(level)
    if not console_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        console_logger.addHandler(handler)
    return console_logger


def show_columns(manager: RecordSyncManager, table_name: str) -> None:
    columns = manager.column_metadata(table_name)
    print(f"\n{table_name}: {len(columns)} column(s)")
    for name, kind in columns.items():
        print(f"  - {name}: {kind.name}")


def show_records(manager: RecordSyncManager, table_name: str, where: Optional[str]) -> None:
    records = manager.query(table_name, where)
    print(f"\n{table_name}: {len(records)} record(s)")
    for record in records:
        print(f"\n[{record.record_id}]")
        for line in record.format_fields():
            print(f"  {line}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect tables through the record sync engine")
    parser.add_argument(
        "--env-file",
        help="Path to .env file (default: .env in working dir or system env vars)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    columns_parser = subparsers.add_parser("columns", help="Show the field kind of every column")
    columns_parser.add_argument("table", help="Table name")

    query_parser = subparsers.add_parser("query", help="Show matching records")
    query_parser.add_argument("table", help="Table name")
    query_parser.add_argument("--where", help="Predicate appended verbatim after WHERE")
    return parser


def main(argv=None) -> int:
    """CLI entry point for the record-sync command."""
    args = build_parser().parse_args(argv)

    print("=" * 60)
    print("RECORD SYNC INSPECTOR")
    print("=" * 60)

    try:
        config = load_config(env_file=args.env_file)
        print(f"✓ Database: {config.get_db_type()}")

        with RecordSyncManager(config, logger=_console_logger(config.log_level)) as manager:
            if args.command == "columns":
                show_columns(manager, args.table)
            else:
                show_records(manager, args.table, args.where)
    except (RecordSyncError, ValueError) as e:
        print(f"\n❌ ERROR: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

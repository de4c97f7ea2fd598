#!/usr/bin/env python3
"""
Database Clear Script

This script empties the shipping back-office tables while keeping the schema.
Use it to return a development or staging database to a blank state.

Usage:
    python scripts/database/clear_database.py
    python scripts/database/clear_database.py --tables clients shipments
    python scripts/database/clear_database.py --require-backup --strict

This will:
1. Connect to the configured database (DB_TYPE=sqlite or postgres)
2. Back up the SQLite file to backups/<name>-backup-before-clear<ext>
3. Delete all rows from each table, continuing past per-table errors
4. Reset AUTO_INCREMENT sequences
5. Log the remaining row count per table and a per-table summary
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from config.settings import ConfigurationError, config
from scripts.database.bulk_mutator import DEFAULT_SHIPPING_TABLES
from scripts.database.errors import BackupError, DatabaseConnectionError
from scripts.database.maintenance import EXIT_FATAL, clear_database, log_summary
from scripts.database.outcomes import TargetTable
from utils.logging import setup_clear_database_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Delete all rows from the shipping back-office tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                # Clear all default tables
  %(prog)s --tables clients shipments     # Clear only these tables, in this order
  %(prog)s --no-reset-sequences           # Keep AUTO_INCREMENT counters
  %(prog)s --require-backup               # Abort if the backup copy fails

Notes:
  - Tables are cleared one at a time; a failure on one table does not stop the rest
  - Nothing is rolled back; check the summary for partially cleared tables
  - Backups are only taken for SQLite databases
        """,
    )

    parser.add_argument(
        "--tables",
        nargs="+",
        metavar="TABLE",
        help="Tables to clear, in order (default: all shipping back-office tables)",
    )

    parser.add_argument(
        "--no-reset-sequences",
        action="store_true",
        help="Skip the AUTO_INCREMENT / sequence reset pass",
    )

    parser.add_argument(
        "--require-backup",
        action="store_true",
        default=None,
        help="Abort before deleting anything if the backup fails (default: BACKUP_REQUIRED)",
    )

    parser.add_argument(
        "--timestamp",
        action="store_true",
        help="Add a timestamp to the backup file name instead of overwriting the last backup",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 2 if any table failed",
    )

    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")

    return parser


def resolve_tables(names: Optional[List[str]]) -> List[TargetTable]:
    """Explicit table names tolerate absence; otherwise use the default table list."""
    if not names:
        return list(DEFAULT_SHIPPING_TABLES)
    return [TargetTable(name=name) for name in names]


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to clear the database.

    Returns:
        int: Exit code (0 for success, 1 for fatal errors, 2 for failures in --strict mode)
    """
    args = build_parser().parse_args(argv)
    logger = setup_clear_database_logging(args.log_level)

    require_backup = (
        config.BACKUP_REQUIRED if args.require_backup is None else args.require_backup
    )

    try:
        logger.info("🗑️  Starting database clear...")
        config.validate_for_database_operations()
        tables = resolve_tables(args.tables)

        result = clear_database(
            config.store_settings(),
            tables,
            reset_sequences=not args.no_reset_sequences,
            require_backup=require_backup,
            timestamped_backup=args.timestamp,
            backup_dir_name=config.BACKUP_DIR_NAME,
            logger=logger,
        )

    except (ConfigurationError, DatabaseConnectionError) as e:
        logger.error(f"❌ Could not open database: {e}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"❌ Invalid table list: {e}")
        return EXIT_FATAL
    except BackupError as e:
        logger.error(f"❌ Aborted before clearing any table: {e}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.error("🛑 Interrupted by user")
        return EXIT_FATAL

    log_summary(result, logger)
    return result.exit_code(strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Column Backfill Script

Adds a column to a table if it is missing and fills every NULL value from a
SQL expression. Safe to re-run: an existing column is reported as skipped and
only rows that are still NULL are updated.

Usage:
    python scripts/database/backfill_column.py --table customer_accounts \\
        --column customer_number --type "VARCHAR(20)" \\
        --expression "'CUST-' || printf('%06d', id)"
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from config.settings import ConfigurationError, config
from scripts.database.errors import BackupError, DatabaseConnectionError
from scripts.database.maintenance import EXIT_FATAL, backfill_column, log_summary
from utils.logging import setup_backfill_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Add a column if missing and backfill its NULL values",
    )
    parser.add_argument("--table", required=True, help="Table to alter")
    parser.add_argument("--column", required=True, help="Column to add and backfill")
    parser.add_argument(
        "--type", dest="column_type", required=True, help="SQL column type, e.g. TEXT"
    )
    parser.add_argument(
        "--expression",
        required=True,
        help="SQL expression evaluated for each row whose column is NULL",
    )
    parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Do not back up the SQLite database file first",
    )
    parser.add_argument(
        "--require-backup",
        action="store_true",
        default=None,
        help="Abort if the backup fails (default: BACKUP_REQUIRED)",
    )
    parser.add_argument(
        "--sample-limit",
        type=int,
        default=config.VERIFY_SAMPLE_LIMIT,
        metavar="N",
        help="Rows to print after the backfill (default: %(default)s)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 2 if either statement failed",
    )
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_backfill_logging(args.log_level)

    require_backup = (
        config.BACKUP_REQUIRED if args.require_backup is None else args.require_backup
    )

    try:
        logger.info(f"🔄 Backfilling {args.table}.{args.column}...")
        config.validate_for_database_operations()

        result = backfill_column(
            config.store_settings(),
            args.table,
            args.column,
            args.column_type,
            args.expression,
            backup=not args.no_backup,
            require_backup=require_backup,
            backup_dir_name=config.BACKUP_DIR_NAME,
            sample_limit=args.sample_limit,
            logger=logger,
        )

    except (ConfigurationError, DatabaseConnectionError) as e:
        logger.error(f"❌ Could not open database: {e}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"❌ Invalid arguments: {e}")
        return EXIT_FATAL
    except BackupError as e:
        logger.error(f"❌ Aborted before altering {args.table}: {e}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.error("🛑 Interrupted by user")
        return EXIT_FATAL

    log_summary(result, logger)
    return result.exit_code(strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())

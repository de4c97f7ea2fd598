#!/usr/bin/env python3
"""
Migration Runner Script

This script replays a plain-text SQL maintenance script against the configured
database, one statement at a time.

Usage:
    python scripts/database/run_migration.py migrations/add-customer-number.sql
    python scripts/database/run_migration.py migrations/create-customer-accounts.sql \\
        --verify-table customer_accounts --sample-limit 5

This will:
1. Read the script and split it into ;-terminated statements
2. Optionally back up the SQLite file first (--backup)
3. Execute every statement in order; errors are logged and the next statement still runs
4. Treat "no such table" / "already exists" style errors as skipped, so re-runs are safe
5. Optionally print sample rows or a verification query result
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from config.settings import ConfigurationError, config
from scripts.database.errors import BackupError, DatabaseConnectionError
from scripts.database.maintenance import EXIT_FATAL, log_summary, run_migration
from utils.logging import setup_migration_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay a ;-separated SQL maintenance script",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("script", help="Path to the SQL script")

    parser.add_argument(
        "--backup",
        action="store_true",
        help="Back up the SQLite database file before running the script",
    )

    parser.add_argument(
        "--require-backup",
        action="store_true",
        default=None,
        help=(
            "Abort before running any statement if the backup fails "
            "(implies --backup; default: BACKUP_REQUIRED)"
        ),
    )

    parser.add_argument(
        "--verify-table",
        metavar="TABLE",
        help="Table to sample after the script has run",
    )

    parser.add_argument(
        "--verify-query",
        metavar="SQL",
        help="Read-only query whose result is printed after the script has run",
    )

    parser.add_argument(
        "--sample-limit",
        type=int,
        default=config.VERIFY_SAMPLE_LIMIT,
        metavar="N",
        help="Number of rows to sample from --verify-table (default: %(default)s)",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 2 if any statement failed",
    )

    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")

    return parser


def read_script(path: str) -> str:
    """
    Read a maintenance script.

    Raises:
        FileNotFoundError: If the script does not exist
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Migration script not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to run a migration script.

    Returns:
        int: Exit code (0 for success, 1 for fatal errors, 2 for failures in --strict mode)
    """
    args = build_parser().parse_args(argv)
    logger = setup_migration_logging(args.log_level)

    require_backup = (
        config.BACKUP_REQUIRED if args.require_backup is None else args.require_backup
    )

    try:
        script = read_script(args.script)
        logger.info(f"🔄 Running migration: {args.script}")
        config.validate_for_database_operations()

        result = run_migration(
            config.store_settings(),
            script,
            backup=args.backup or bool(args.require_backup),
            require_backup=require_backup,
            backup_dir_name=config.BACKUP_DIR_NAME,
            verify_table=args.verify_table,
            verify_query=args.verify_query,
            sample_limit=args.sample_limit,
            logger=logger,
        )

    except FileNotFoundError as e:
        logger.error(f"❌ {e}")
        return EXIT_FATAL
    except (ConfigurationError, DatabaseConnectionError) as e:
        logger.error(f"❌ Could not open database: {e}")
        return EXIT_FATAL
    except BackupError as e:
        logger.error(f"❌ Aborted before running any statement: {e}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.error("🛑 Interrupted by user")
        return EXIT_FATAL

    log_summary(result, logger)
    return result.exit_code(strict=args.strict)


if __name__ == "__main__":
    sys.exit(main())

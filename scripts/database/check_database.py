#!/usr/bin/env python3
"""
Database Status Script

Read-only inspection of the configured database. Use it to confirm which
store the tools will talk to before running anything destructive, and to
check the result afterwards.

Usage:
    python scripts/database/check_database.py
    python scripts/database/check_database.py --columns --sample 3

This will:
1. Log the resolved configuration (secrets redacted)
2. Connect to the database
3. List existing tables and report which expected tables are missing
4. Log row counts, and optionally column layouts and sample rows
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

sys.path.append(os.path.join(os.path.dirname(__file__), "..", ".."))

from config.settings import ConfigurationError, config
from scripts.database.bulk_mutator import DEFAULT_SHIPPING_TABLES
from scripts.database.connection import MaintenanceConnection, open_connection
from scripts.database.errors import DatabaseConnectionError
from scripts.database.maintenance import EXIT_FATAL, EXIT_SUCCESS
from scripts.database.verifier import Verifier
from utils.logging import setup_check_database_logging

# SQLite bookkeeping tables are not part of the application schema
INTERNAL_TABLES = {"sqlite_sequence", "sqlite_stat1"}


def log_configuration(logger: logging.Logger) -> None:
    """Log the redacted configuration and the store kind it resolves to."""
    logger.info("🔍 Configuration:")
    for key, value in config.describe().items():
        logger.info(f"  - {key}: {value}")

    try:
        store = config.store_settings().describe()
    except ConfigurationError as e:
        logger.error(f"  ❌ Store settings incomplete: {e}")
        return
    logger.info(f"  - resolved store: {store}")


def check_tables(connection: MaintenanceConnection, logger: logging.Logger) -> List[str]:
    """
    List user tables and flag expected tables that are missing.

    Returns:
        List[str]: Existing user tables
    """
    tables = [t for t in connection.table_names() if t not in INTERNAL_TABLES]
    logger.info(f"\n📋 Existing tables: {len(tables)}")
    for table_name in tables:
        logger.info(f"  - {table_name}")

    for target in DEFAULT_SHIPPING_TABLES:
        if target.name in tables:
            continue
        if target.may_not_exist:
            logger.info(f"ℹ️  Optional table {target.name} - not present")
        else:
            logger.warning(f"⚠️  Table {target.name} - missing")
    return tables


def log_columns(
    connection: MaintenanceConnection, tables: List[str], logger: logging.Logger
) -> None:
    for table_name in tables:
        logger.info(f"\n🏗️  {table_name}:")
        for index, column in enumerate(connection.column_info(table_name), start=1):
            nullable = "NULL" if column["nullable"] else "NOT NULL"
            default = f" | default: {column['default']}" if column["default"] else ""
            logger.info(f"  {index}. {column['name']}: {column['type']} {nullable}{default}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect the configured database")
    parser.add_argument(
        "--columns", action="store_true", help="Log the column layout of each table"
    )
    parser.add_argument(
        "--sample",
        type=int,
        default=0,
        metavar="N",
        help="Log up to N sample rows per table (default: none)",
    )
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")
    args = parser.parse_args(argv)

    logger = setup_check_database_logging(args.log_level)
    log_configuration(logger)

    try:
        config.validate_for_database_operations()
        connection = open_connection(config.store_settings(), logger)
    except (ConfigurationError, DatabaseConnectionError) as e:
        logger.error(f"❌ Could not open database: {e}")
        return EXIT_FATAL

    with connection:
        tables = check_tables(connection, logger)

        verifier = Verifier(connection, logger)
        logger.info("\n📊 Row counts:")
        verifier.log_row_counts(tables)

        if args.columns:
            log_columns(connection, tables, logger)

        if args.sample > 0:
            for table_name in tables:
                verifier.log_sample(table_name, args.sample)

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())

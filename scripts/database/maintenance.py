"""
Maintenance pipelines shared by the command-line tools.

Each pipeline follows the same linear flow:

    open connection -> backup (destructive runs) -> mutate -> verify -> close

Only two errors end a run early: the store cannot be opened
(DatabaseConnectionError), or a backup marked as required fails (BackupError).
Everything else ends up as a line in the outcome reports.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from config.settings import EmbeddedStoreSettings, NetworkedStoreSettings
from scripts.database.backup import (
    DEFAULT_BACKUP_DIR_NAME,
    DEFAULT_BACKUP_SUFFIX,
    backup_store,
)
from scripts.database.bulk_mutator import BulkMutator, as_target_tables
from scripts.database.connection import open_connection
from scripts.database.errors import VerificationError
from scripts.database.outcomes import (
    IDENTIFIER_PATTERN,
    BackupRecord,
    MaintenanceStatement,
    OutcomeReport,
    TargetTable,
)
from scripts.database.statement_runner import StatementRunner
from scripts.database.verifier import Verifier, format_rows

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_STRICT_FAILURES = 2

MIGRATION_BACKUP_SUFFIX = "-backup-before-migration"

# Column types such as TEXT, INTEGER, VARCHAR(20), NUMERIC(10, 2)
COLUMN_TYPE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*(\(\s*\d+\s*(,\s*\d+\s*)?\))?$")

StoreSettings = Union[EmbeddedStoreSettings, NetworkedStoreSettings]


class MaintenanceResult(BaseModel):
    """Everything a maintenance run produced, in the order it happened."""

    backup: Optional[BackupRecord] = None
    reports: List[OutcomeReport] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return any(report.has_failures for report in self.reports)

    def exit_code(self, strict: bool = False) -> int:
        """
        Exit code for the run.

        Tolerated per-target failures still exit 0 unless ``strict`` is set.
        """
        if strict and self.has_failures:
            return EXIT_STRICT_FAILURES
        return EXIT_SUCCESS


def log_summary(result: MaintenanceResult, logger: logging.Logger) -> None:
    """Log every target with its outcome, then an overall status line."""
    logger.info("\n" + "=" * 60)
    if result.backup is not None:
        if result.backup.succeeded:
            logger.info(f"💾 Backup: {result.backup.backup_path}")
        elif result.backup.failed:
            logger.warning(f"⚠️  Backup: not created ({result.backup.error_message})")
        else:
            logger.info("💾 Backup: not applicable for networked database")

    for report in result.reports:
        for line in report.summary_lines():
            logger.info(line)

    if result.has_failures:
        logger.warning("⚠️  Completed with partial success - see failures above")
    else:
        logger.info("🎉 Completed successfully!")


def clear_database(
    store_settings: StoreSettings,
    tables: Sequence[Union[TargetTable, str]],
    reset_sequences: bool = True,
    require_backup: bool = False,
    timestamped_backup: bool = False,
    backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
    logger: Optional[logging.Logger] = None,
) -> MaintenanceResult:
    """
    Back up the store, delete all rows from each table and reset sequences.

    Args:
        store_settings: Immutable store snapshot
        tables: Ordered target tables
        reset_sequences (bool): Run the sequence-reset pass after deleting rows
        require_backup (bool): Abort before any deletion if the backup fails
        timestamped_backup (bool): Keep earlier backups by timestamping the file name
        backup_dir_name (str): Backup directory next to the database file
        logger (logging.Logger, optional): Logger for progress

    Returns:
        MaintenanceResult: Backup record and the 'delete rows' / 'reset sequences' reports

    Raises:
        DatabaseConnectionError: If the store cannot be opened
        BackupError: If the backup fails and ``require_backup`` is True
    """
    logger = logger or logging.getLogger(__name__)
    targets = as_target_tables(tables)
    result = MaintenanceResult()

    with open_connection(store_settings, logger) as connection:
        result.backup = backup_store(
            store_settings,
            suffix=DEFAULT_BACKUP_SUFFIX,
            backup_dir_name=backup_dir_name,
            timestamped=timestamped_backup,
            required=require_backup,
            logger=logger,
        )

        mutator = BulkMutator(connection, logger)
        logger.info("\n📋 Clearing tables...")
        result.reports.append(mutator.clear_all(targets))

        if reset_sequences:
            logger.info("\n🔄 Resetting AUTO_INCREMENT sequences...")
            result.reports.append(mutator.reset_sequences(targets))

        logger.info("\n🔍 Remaining rows per table:")
        Verifier(connection, logger).log_row_counts([t.name for t in targets])

    return result


def run_migration(
    store_settings: StoreSettings,
    script: str,
    backup: bool = False,
    require_backup: bool = False,
    backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
    verify_table: Optional[str] = None,
    verify_query: Optional[str] = None,
    sample_limit: int = 5,
    logger: Optional[logging.Logger] = None,
) -> MaintenanceResult:
    """
    Replay a maintenance script statement by statement.

    Args:
        store_settings: Immutable store snapshot
        script (str): Script text (``;``-terminated statements)
        backup (bool): Back up the store before running the script
        require_backup (bool): Abort before any statement if the backup fails
        backup_dir_name (str): Backup directory next to the database file
        verify_table (str, optional): Table to sample after the run
        verify_query (str, optional): Read-only query whose rows are logged after the run
        sample_limit (int): Rows to sample from ``verify_table``
        logger (logging.Logger, optional): Logger for progress

    Returns:
        MaintenanceResult: Backup record (if requested) and the 'statements' report

    Raises:
        DatabaseConnectionError: If the store cannot be opened
        BackupError: If the backup fails and ``require_backup`` is True
    """
    logger = logger or logging.getLogger(__name__)
    result = MaintenanceResult()

    with open_connection(store_settings, logger) as connection:
        if backup:
            result.backup = backup_store(
                store_settings,
                suffix=MIGRATION_BACKUP_SUFFIX,
                backup_dir_name=backup_dir_name,
                required=require_backup,
                logger=logger,
            )

        result.reports.append(StatementRunner(connection, logger).run(script))

        verifier = Verifier(connection, logger)
        if verify_table:
            verifier.log_sample(verify_table, sample_limit)
        if verify_query:
            _log_query(verifier, verify_query, logger)

    return result


def backfill_column(
    store_settings: StoreSettings,
    table: str,
    column: str,
    column_type: str,
    expression: str,
    backup: bool = True,
    require_backup: bool = False,
    backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
    sample_limit: int = 5,
    logger: Optional[logging.Logger] = None,
) -> MaintenanceResult:
    """
    Add a column if it is missing, then fill its NULL rows from an expression.

    The two statements run independently: when the column already exists the
    ADD COLUMN is reported as skipped and the UPDATE still runs.

    Args:
        store_settings: Immutable store snapshot
        table (str): Table to alter
        column (str): Column to add and backfill
        column_type (str): SQL column type, e.g. ``VARCHAR(20)``
        expression (str): SQL expression evaluated per row, e.g. ``'CUST-' || id``
        backup (bool): Back up the store first
        require_backup (bool): Abort before any statement if the backup fails
        backup_dir_name (str): Backup directory next to the database file
        sample_limit (int): Rows to sample after the backfill
        logger (logging.Logger, optional): Logger for progress

    Returns:
        MaintenanceResult: Backup record (if requested) and the 'backfill' report

    Raises:
        ValueError: If the table, column or type is not a plain SQL identifier/type
        DatabaseConnectionError: If the store cannot be opened
        BackupError: If the backup fails and ``require_backup`` is True
    """
    logger = logger or logging.getLogger(__name__)
    statements = build_backfill_statements(table, column, column_type, expression)
    result = MaintenanceResult()

    with open_connection(store_settings, logger) as connection:
        if backup:
            result.backup = backup_store(
                store_settings,
                suffix=MIGRATION_BACKUP_SUFFIX,
                backup_dir_name=backup_dir_name,
                required=require_backup,
                logger=logger,
            )

        runner = StatementRunner(connection, logger)
        result.reports.append(runner.run_statements(statements, name="backfill"))

        Verifier(connection, logger).log_sample(table, sample_limit)

    return result


def build_backfill_statements(
    table: str, column: str, column_type: str, expression: str
) -> List[MaintenanceStatement]:
    """
    Build the ADD COLUMN and UPDATE statements for a backfill.

    Raises:
        ValueError: If any identifier or the column type is malformed
    """
    for label, value in (("table", table), ("column", column)):
        if not IDENTIFIER_PATTERN.match(value):
            raise ValueError(f"Invalid {label} name: {value!r}")
    if not COLUMN_TYPE_PATTERN.match(column_type.strip()):
        raise ValueError(f"Invalid column type: {column_type!r}")
    if not expression.strip():
        raise ValueError("Backfill expression must not be empty")

    return [
        MaintenanceStatement(
            ordinal=1,
            text=f"ALTER TABLE {table} ADD COLUMN {column} {column_type.strip()}",
        ),
        MaintenanceStatement(
            ordinal=2,
            text=f"UPDATE {table} SET {column} = {expression.strip()} WHERE {column} IS NULL",
        ),
    ]


def _log_query(verifier: Verifier, sql: str, logger: logging.Logger) -> None:
    try:
        rows = verifier.run_query(sql)
    except VerificationError as e:
        logger.error(f"❌ {e}")
        return

    if rows:
        logger.info("📋 Verification query result:\n" + format_rows(rows))
    else:
        logger.info("📋 Verification query returned no rows")

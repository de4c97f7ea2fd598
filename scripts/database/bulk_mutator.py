"""
Bulk mutator: clear every row from an ordered list of tables.

Tables are processed one at a time in the order given. A failure on one table
is recorded and the next table is still attempted; there is no transaction
spanning tables, so a partially cleared store is a reported outcome rather
than something that gets rolled back.

Deleting rows and resetting auto-increment sequences are two separate passes,
each producing its own report.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from scripts.database.connection import MaintenanceConnection
from scripts.database.outcomes import (
    OperationOutcome,
    OutcomeReport,
    TargetTable,
    driver_error_details,
    is_absent_object_error,
)

# Tables of the shipping back office, in clearing order.
# The last four only exist in some deployments.
DEFAULT_SHIPPING_TABLES = [
    TargetTable(name="clients", may_not_exist=False),
    TargetTable(name="shipments", may_not_exist=False),
    TargetTable(name="payment_records", may_not_exist=False),
    TargetTable(name="users", may_not_exist=False),
    TargetTable(name="ads", may_not_exist=False),
    TargetTable(name="settings", may_not_exist=False),
    TargetTable(name="customer_accounts"),
    TargetTable(name="vessels"),
    TargetTable(name="tracking_events"),
    TargetTable(name="notifications"),
]


def as_target_tables(tables: Sequence[Union[TargetTable, str]]) -> List[TargetTable]:
    """Normalize table names to TargetTable objects (plain names tolerate absence)."""
    return [t if isinstance(t, TargetTable) else TargetTable(name=t) for t in tables]


class BulkMutator:
    """Apply delete-all-rows and sequence-reset passes over a list of tables."""

    def __init__(
        self, connection: MaintenanceConnection, logger: Optional[logging.Logger] = None
    ):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)

    def clear_table(self, table: TargetTable) -> OperationOutcome:
        """Delete all rows from one table."""
        try:
            deleted = self.connection.execute(f"DELETE FROM {table.name}")
        except SQLAlchemyError as e:
            message, pgcode = driver_error_details(e)
            if table.may_not_exist and is_absent_object_error(message, pgcode):
                self.logger.warning(f"⚠️  Table {table.name} does not exist - skipped")
                return OperationOutcome.skipped(table.name, message)
            self.logger.error(f"❌ Error clearing table {table.name}: {message}")
            return OperationOutcome.failed(table.name, message)

        self.logger.info(f"✅ Cleared table {table.name} - {deleted or 0} rows deleted")
        return OperationOutcome.succeeded(table.name, deleted or 0)

    def clear_all(self, tables: Sequence[Union[TargetTable, str]]) -> OutcomeReport:
        """
        Delete all rows from each table, in the given order.

        Args:
            tables: Ordered target tables (plain names are treated as may_not_exist)

        Returns:
            OutcomeReport: Exactly one outcome per table, in input order
        """
        report = OutcomeReport(name="delete rows")
        for table in as_target_tables(tables):
            report.add(self.clear_table(table))
        return report

    def reset_sequence(self, table: TargetTable) -> OperationOutcome:
        """
        Reset the auto-increment sequence of one table.

        A table without a sequence (or a missing table) is reported as skipped.
        """
        dialect = self.connection.dialect_name
        try:
            if dialect == "sqlite":
                return self._reset_sqlite_sequence(table)
            if dialect == "postgresql":
                return self._reset_postgres_sequence(table)
        except SQLAlchemyError as e:
            message, pgcode = driver_error_details(e)
            if is_absent_object_error(message, pgcode):
                return OperationOutcome.skipped(table.name, message)
            self.logger.error(f"❌ Error resetting sequence for {table.name}: {message}")
            return OperationOutcome.failed(table.name, message)

        return OperationOutcome.skipped(
            table.name, f"sequence reset not supported for {dialect}"
        )

    def _reset_sqlite_sequence(self, table: TargetTable) -> OperationOutcome:
        # sqlite_sequence only exists once an AUTOINCREMENT table has been created
        deleted = self.connection.execute(
            "DELETE FROM sqlite_sequence WHERE name = :name", {"name": table.name}
        )
        if not deleted:
            return OperationOutcome.skipped(table.name, "no sequence for table")
        self.logger.info(f"✅ Reset AUTO_INCREMENT for {table.name}")
        return OperationOutcome.succeeded(table.name, deleted)

    def _reset_postgres_sequence(self, table: TargetTable) -> OperationOutcome:
        sequence = self.connection.fetch_scalar(
            "SELECT pg_get_serial_sequence(:name, 'id')", {"name": table.name}
        )
        if not sequence:
            return OperationOutcome.skipped(table.name, "no sequence for table")
        self.connection.execute(f"ALTER SEQUENCE {sequence} RESTART WITH 1")
        self.logger.info(f"✅ Reset sequence {sequence} for {table.name}")
        return OperationOutcome.succeeded(table.name)

    def reset_sequences(self, tables: Sequence[Union[TargetTable, str]]) -> OutcomeReport:
        """
        Reset auto-increment sequences for each table, in the given order.

        Returns:
            OutcomeReport: Exactly one outcome per table, in input order
        """
        report = OutcomeReport(name="reset sequences")
        for table in as_target_tables(tables):
            report.add(self.reset_sequence(table))
        return report

"""
Read-only verification after a maintenance run.

The verifier re-queries affected tables so the operator can eyeball the
result: a handful of sample rows, or the remaining row count per table.
Nothing here can change a run's exit status; failures are logged and the
caller moves on.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from scripts.database.connection import MaintenanceConnection
from scripts.database.errors import VerificationError
from scripts.database.outcomes import IDENTIFIER_PATTERN


class Verifier:
    """Sample rows and count remaining rows for human confirmation."""

    def __init__(
        self, connection: MaintenanceConnection, logger: Optional[logging.Logger] = None
    ):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)

    def run_query(
        self, sql: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Run a caller-supplied read-only query.

        Raises:
            VerificationError: If the query fails
        """
        try:
            return self.connection.fetch_all(sql, params)
        except SQLAlchemyError as e:
            raise VerificationError(f"Verification query failed: {e}") from e

    def sample(
        self, table_name: str, limit: int = 5, columns: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch up to ``limit`` rows from a table, in storage order.

        Args:
            table_name (str): Table to sample
            limit (int): Maximum number of rows
            columns (Sequence[str], optional): Columns to select; all when None

        Returns:
            List[Dict[str, Any]]: Row snapshots

        Raises:
            VerificationError: If the table name is invalid or the query fails
        """
        names = [table_name, *(columns or [])]
        invalid = [name for name in names if not IDENTIFIER_PATTERN.match(name)]
        if invalid:
            raise VerificationError(f"Invalid identifier(s): {', '.join(invalid)}")

        column_list = ", ".join(columns) if columns else "*"
        return self.run_query(
            f"SELECT {column_list} FROM {table_name} LIMIT :limit", {"limit": int(limit)}
        )

    def row_counts(self, table_names: Sequence[str]) -> Dict[str, Optional[int]]:
        """
        Count rows per table. Tables that cannot be counted map to None.
        """
        counts: Dict[str, Optional[int]] = {}
        for table_name in table_names:
            if not IDENTIFIER_PATTERN.match(table_name):
                self.logger.warning(f"⚠️  Skipping invalid table name: {table_name!r}")
                counts[table_name] = None
                continue
            try:
                counts[table_name] = int(
                    self.connection.fetch_scalar(f"SELECT COUNT(*) FROM {table_name}")
                )
            except SQLAlchemyError as e:
                orig = getattr(e, "orig", None) or e
                self.logger.warning(f"⚠️  Could not count rows in {table_name}: {orig}")
                counts[table_name] = None
        return counts

    def log_sample(
        self, table_name: str, limit: int = 5, columns: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Sample a table and log the rows as a table. Never raises.

        Returns:
            List[Dict[str, Any]]: The sampled rows, or an empty list on failure
        """
        try:
            rows = self.sample(table_name, limit, columns)
        except VerificationError as e:
            self.logger.error(f"❌ Error verifying {table_name}: {e}")
            return []

        if not rows:
            self.logger.info(f"📋 {table_name}: no rows")
            return rows

        self.logger.info(
            f"📋 Sample of {table_name} ({len(rows)} rows):\n" + format_rows(rows)
        )
        return rows

    def log_row_counts(self, table_names: Sequence[str]) -> Dict[str, Optional[int]]:
        counts = self.row_counts(table_names)
        for table_name, count in counts.items():
            if count is None:
                self.logger.info(f"📊 {table_name}: not available")
            else:
                self.logger.info(f"📊 {table_name}: {count} rows")
        return counts


def format_rows(rows: List[Dict[str, Any]]) -> str:
    """Render row snapshots as a plain-text table."""
    return pd.DataFrame(rows).to_string(index=False)

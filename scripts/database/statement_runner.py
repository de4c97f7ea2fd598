"""
Statement runner for maintenance and migration scripts.

A script is a plain-text file of ``;``-terminated statements. The runner
splits it into statements and replays them one at a time, in order, on a
single connection. A failing statement is recorded and the run moves on to
the next one, so scripts written to be re-runnable (ADD COLUMN followed by a
backfill UPDATE, for instance) can be replayed safely.

Example Usage:
    runner = StatementRunner(connection, logger)
    report = runner.run(open("migrations/add-customer-number.sql").read())
    for line in report.summary_lines():
        logger.info(line)
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from scripts.database.connection import MaintenanceConnection
from scripts.database.errors import StatementError
from scripts.database.outcomes import (
    MaintenanceStatement,
    OperationOutcome,
    OutcomeReport,
    driver_error_details,
    is_absent_object_error,
)

STATEMENT_TERMINATOR = ";"


def split_statements(script: str) -> List[MaintenanceStatement]:
    """
    Split a script into trimmed, non-empty statements.

    The terminator is ignored inside single- or double-quoted literals.
    ``--`` line comments and ``/* */`` block comments are dropped, so a
    fragment holding only comments does not become a statement.

    Args:
        script (str): Raw script text

    Returns:
        List[MaintenanceStatement]: Statements numbered from 1 in script order
    """
    fragments: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    i = 0
    length = len(script)

    while i < length:
        char = script[i]
        nxt = script[i + 1] if i + 1 < length else ""

        if quote is not None:
            current.append(char)
            # A doubled quote inside a literal toggles twice and stays inside
            if char == quote:
                quote = None
            i += 1
            continue

        if char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == "-" and nxt == "-":
            newline = script.find("\n", i)
            i = length if newline == -1 else newline
            continue
        elif char == "/" and nxt == "*":
            end = script.find("*/", i + 2)
            i = length if end == -1 else end + 2
            current.append(" ")
            continue
        elif char == STATEMENT_TERMINATOR:
            fragments.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fragments.append("".join(current))

    statements = []
    for fragment in fragments:
        stripped = fragment.strip()
        if stripped:
            statements.append(
                MaintenanceStatement(ordinal=len(statements) + 1, text=stripped)
            )
    return statements


class StatementRunner:
    """Replay a script's statements sequentially against one connection."""

    def __init__(
        self, connection: MaintenanceConnection, logger: Optional[logging.Logger] = None
    ):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)

    def execute_statement(self, statement: MaintenanceStatement) -> OperationOutcome:
        """
        Execute one statement and classify the result.

        Returns:
            OperationOutcome: succeeded, skipped_not_found (object absent or
                              already applied) or failed. Never raises for
                              driver errors.
        """
        target = f"statement {statement.ordinal}"
        try:
            affected = self._execute(statement)
        except StatementError as e:
            message = str(e)
            if is_absent_object_error(message, e.pgcode):
                self.logger.warning(
                    f"⚠️  Statement {statement.ordinal} skipped: {message}"
                )
                return OperationOutcome.skipped(target, message)
            self.logger.error(f"❌ Error executing statement {statement.ordinal}: {message}")
            self.logger.error(f"Statement: {statement.text}")
            return OperationOutcome.failed(target, message)

        self.logger.info(
            f"✅ Statement {statement.ordinal} executed: {statement.preview()}"
        )
        return OperationOutcome.succeeded(target, affected)

    def _execute(self, statement: MaintenanceStatement) -> Optional[int]:
        try:
            return self.connection.execute(statement.text)
        except SQLAlchemyError as e:
            message, pgcode = driver_error_details(e)
            raise StatementError(message, statement.text, pgcode) from e

    def run_statements(
        self, statements: List[MaintenanceStatement], name: str = "statements"
    ) -> OutcomeReport:
        report = OutcomeReport(name=name)
        for statement in statements:
            report.add(self.execute_statement(statement))
        return report

    def run(self, script: str, name: str = "statements") -> OutcomeReport:
        """
        Split and execute a script.

        Every statement is attempted exactly once, in script order, regardless
        of earlier outcomes. An empty script yields an empty report.

        Args:
            script (str): Raw script text
            name (str): Report name

        Returns:
            OutcomeReport: One outcome per statement, in script order
        """
        statements = split_statements(script)
        if not statements:
            self.logger.info("ℹ️  Script contains no statements - nothing to run")
            return OutcomeReport(name=name)

        self.logger.info(f"🔄 Executing {len(statements)} statements...")
        return self.run_statements(statements, name=name)

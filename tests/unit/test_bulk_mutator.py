"""
Unit tests for bulk_mutator.py.

Tests cover ordering, per-table error handling and the dialect-specific
sequence reset without requiring a real database connection.
"""

import sqlite3
from unittest.mock import call

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from scripts.database.bulk_mutator import (
    DEFAULT_SHIPPING_TABLES,
    BulkMutator,
    as_target_tables,
)
from scripts.database.outcomes import OperationStatus, TargetTable


def driver_error(message, cls=OperationalError):
    return cls("statement", {}, sqlite3.OperationalError(message))


class TestTargetTables:
    """Test cases for table list normalization."""

    def test_plain_names_tolerate_absence(self):
        tables = as_target_tables(["clients", TargetTable(name="users", may_not_exist=False)])

        assert [t.name for t in tables] == ["clients", "users"]
        assert tables[0].may_not_exist is True
        assert tables[1].may_not_exist is False

    def test_invalid_names_rejected(self):
        with pytest.raises(ValueError):
            as_target_tables(["clients; DROP TABLE users"])

    def test_default_tables(self):
        names = [t.name for t in DEFAULT_SHIPPING_TABLES]

        assert names[:3] == ["clients", "shipments", "payment_records"]
        optional = {t.name for t in DEFAULT_SHIPPING_TABLES if t.may_not_exist}
        assert optional == {"customer_accounts", "vessels", "tracking_events", "notifications"}


class TestClearAll:
    """Test cases for the delete-rows pass."""

    def test_clients_cleared_and_missing_shipments_skipped(
        self, mock_connection, mock_logger
    ):
        mock_connection.execute.side_effect = [5, driver_error("no such table: shipments")]
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.clear_all(["clients", "shipments"])

        assert mock_connection.execute.call_args_list == [
            call("DELETE FROM clients"),
            call("DELETE FROM shipments"),
        ]
        assert report.name == "delete rows"
        assert report.targets == ["clients", "shipments"]
        assert report.outcomes[0].status == OperationStatus.SUCCEEDED
        assert report.outcomes[0].affected_count == 5
        assert report.outcomes[1].status == OperationStatus.SKIPPED_NOT_FOUND
        assert not report.has_failures

    def test_required_table_missing_is_failure(self, mock_connection, mock_logger):
        mock_connection.execute.side_effect = driver_error("no such table: clients")
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.clear_all([TargetTable(name="clients", may_not_exist=False)])

        assert report.outcomes[0].status == OperationStatus.FAILED
        assert report.outcomes[0].error_message == "no such table: clients"

    def test_failure_does_not_stop_remaining_tables(self, mock_connection, mock_logger):
        mock_connection.execute.side_effect = [
            2,
            driver_error("FOREIGN KEY constraint failed", IntegrityError),
            0,
        ]
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.clear_all(["clients", "shipments", "users"])

        assert mock_connection.execute.call_count == 3
        assert [o.status for o in report.outcomes] == [
            OperationStatus.SUCCEEDED,
            OperationStatus.FAILED,
            OperationStatus.SUCCEEDED,
        ]
        assert report.outcomes[2].affected_count == 0

    def test_empty_table_reports_zero_rows(self, mock_connection, mock_logger):
        mock_connection.execute.return_value = None
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.clear_all(["ads"])

        assert report.outcomes[0].status == OperationStatus.SUCCEEDED
        assert report.outcomes[0].affected_count == 0


class TestResetSequences:
    """Test cases for the sequence-reset pass."""

    def test_sqlite_sequence_row_deleted(self, mock_connection, mock_logger):
        mock_connection.execute.return_value = 1
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["clients"])

        mock_connection.execute.assert_called_once_with(
            "DELETE FROM sqlite_sequence WHERE name = :name", {"name": "clients"}
        )
        assert report.name == "reset sequences"
        assert report.outcomes[0].status == OperationStatus.SUCCEEDED

    def test_sqlite_without_sequence_row_is_skipped(self, mock_connection, mock_logger):
        mock_connection.execute.return_value = 0
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["settings"])

        assert report.outcomes[0].status == OperationStatus.SKIPPED_NOT_FOUND

    def test_sqlite_without_sequence_table_is_skipped(self, mock_connection, mock_logger):
        mock_connection.execute.side_effect = driver_error("no such table: sqlite_sequence")
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["clients", "users"])

        assert [o.status for o in report.outcomes] == [
            OperationStatus.SKIPPED_NOT_FOUND,
            OperationStatus.SKIPPED_NOT_FOUND,
        ]

    def test_postgres_sequence_restarted(self, mock_connection, mock_logger):
        mock_connection.dialect_name = "postgresql"
        mock_connection.fetch_scalar.return_value = "public.clients_id_seq"
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["clients"])

        mock_connection.fetch_scalar.assert_called_once_with(
            "SELECT pg_get_serial_sequence(:name, 'id')", {"name": "clients"}
        )
        mock_connection.execute.assert_called_once_with(
            "ALTER SEQUENCE public.clients_id_seq RESTART WITH 1"
        )
        assert report.outcomes[0].status == OperationStatus.SUCCEEDED

    def test_postgres_table_without_sequence_is_skipped(self, mock_connection, mock_logger):
        mock_connection.dialect_name = "postgresql"
        mock_connection.fetch_scalar.return_value = None
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["settings"])

        mock_connection.execute.assert_not_called()
        assert report.outcomes[0].status == OperationStatus.SKIPPED_NOT_FOUND

    def test_postgres_missing_relation_is_skipped(self, mock_connection, mock_logger):
        mock_connection.dialect_name = "postgresql"
        mock_connection.fetch_scalar.side_effect = driver_error(
            'relation "vessels" does not exist'
        )
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["vessels"])

        assert report.outcomes[0].status == OperationStatus.SKIPPED_NOT_FOUND

    def test_unsupported_dialect_is_skipped(self, mock_connection, mock_logger):
        mock_connection.dialect_name = "mysql"
        mutator = BulkMutator(mock_connection, mock_logger)

        report = mutator.reset_sequences(["clients"])

        assert report.outcomes[0].status == OperationStatus.SKIPPED_NOT_FOUND
        assert "not supported" in report.outcomes[0].error_message

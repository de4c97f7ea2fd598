"""
Shared test fixtures and configuration for the maintenance test suite.

This file contains pytest fixtures that can be used across all test modules.
Fixtures defined here are automatically available to all test files.
"""

import logging
import os
import sqlite3
from unittest.mock import MagicMock, Mock

import pytest
from dotenv import load_dotenv

from config.settings import EmbeddedStoreSettings, config
from scripts.database.connection import MaintenanceConnection

# Load test environment variables (if any)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


SHIPPING_SCHEMA = {
    "clients": "id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, phone TEXT",
    "shipments": (
        "id INTEGER PRIMARY KEY AUTOINCREMENT, client_id INTEGER, "
        "tracking_number TEXT, origin_port TEXT, destination_port TEXT"
    ),
    "payment_records": "id INTEGER PRIMARY KEY AUTOINCREMENT, shipment_id INTEGER, amount REAL",
    "users": "id INTEGER PRIMARY KEY AUTOINCREMENT, username TEXT, role TEXT",
    "ads": "id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT",
    "settings": "key TEXT PRIMARY KEY, value TEXT",
    "customer_accounts": (
        "id INTEGER PRIMARY KEY AUTOINCREMENT, tracking_number TEXT, customer_name TEXT"
    ),
}


def create_shipping_database(path, tables=None, rows_per_table=None):
    """
    Create a SQLite database file with (a subset of) the shipping schema.

    Args:
        path: Database file path
        tables: Table names to create (default: all of SHIPPING_SCHEMA)
        rows_per_table: Mapping of table name to number of rows to insert

    Returns:
        str: The database path
    """
    tables = list(SHIPPING_SCHEMA) if tables is None else tables
    rows_per_table = rows_per_table or {}

    conn = sqlite3.connect(str(path))
    try:
        for table_name in tables:
            conn.execute(f"CREATE TABLE {table_name} ({SHIPPING_SCHEMA[table_name]})")
        for table_name, count in rows_per_table.items():
            for i in range(count):
                if table_name == "clients":
                    conn.execute(
                        "INSERT INTO clients (name, phone) VALUES (?, ?)",
                        (f"Client {i + 1}", f"09{i:08d}"),
                    )
                elif table_name == "shipments":
                    conn.execute(
                        "INSERT INTO shipments (client_id, tracking_number) VALUES (?, ?)",
                        (i + 1, f"MSKU{i:07d}"),
                    )
                elif table_name == "customer_accounts":
                    conn.execute(
                        "INSERT INTO customer_accounts (tracking_number, customer_name) "
                        "VALUES (?, ?)",
                        (f"MSKU{i:07d}", f"Customer {i + 1}"),
                    )
                elif table_name == "settings":
                    conn.execute(
                        "INSERT INTO settings (key, value) VALUES (?, ?)",
                        (f"key_{i}", f"value_{i}"),
                    )
                else:
                    raise ValueError(f"No seed data defined for {table_name}")
        conn.commit()
    finally:
        conn.close()
    return str(path)


def count_rows(path, table_name):
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def shipping_db(tmp_path):
    """
    SQLite database with the full shipping schema, 5 clients and 3 shipments.
    """
    return create_shipping_database(
        tmp_path / "database.sqlite", rows_per_table={"clients": 5, "shipments": 3}
    )


@pytest.fixture
def shipping_store(shipping_db):
    """EmbeddedStoreSettings pointing at the shipping_db fixture."""
    return EmbeddedStoreSettings(path=shipping_db)


@pytest.fixture
def mock_logger():
    return Mock(spec=logging.Logger)


@pytest.fixture
def mock_connection():
    """
    Provide a mock MaintenanceConnection for unit tests.

    Configure ``execute.side_effect`` / ``fetch_scalar.return_value`` per test.
    """
    connection = MagicMock(spec=MaintenanceConnection)
    connection.dialect_name = "sqlite"
    connection.is_file_based = True
    return connection


@pytest.fixture
def sqlite_config(monkeypatch, shipping_db, tmp_path):
    """
    Point the global config at the shipping_db fixture and run from tmp_path
    so CLI log files land in the test directory.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "DB_TYPE", "sqlite")
    monkeypatch.setattr(config, "DB_PATH", shipping_db)
    monkeypatch.setattr(config, "BACKUP_REQUIRED", False)
    monkeypatch.setattr(config, "BACKUP_DIR_NAME", "backups")
    return config


@pytest.fixture
def make_shipping_db(tmp_path):
    """
    Factory fixture creating SQLite shipping databases under tmp_path.

    Usage:
        path = make_shipping_db(["clients"], {"clients": 5})
    """

    def _make(tables=None, rows_per_table=None, name="database.sqlite"):
        return create_shipping_database(tmp_path / name, tables, rows_per_table)

    return _make


@pytest.fixture
def row_count():
    """Return a function counting rows of a table in a SQLite file."""
    return count_rows

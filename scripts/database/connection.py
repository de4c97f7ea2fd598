"""
Connection provider for maintenance runs.

A maintenance run holds exactly one connection to the store for its whole
lifetime. The store kind (embedded SQLite file or networked PostgreSQL server)
is decided by the settings object passed in, never by inspecting URLs or
environment variables here.

Example Usage:
    settings = config.store_settings()
    with open_connection(settings, logger) as connection:
        deleted = connection.execute("DELETE FROM clients")
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from config.settings import EmbeddedStoreSettings, NetworkedStoreSettings
from scripts.database.errors import AlreadyClosedError, DatabaseConnectionError


class MaintenanceConnection:
    """
    A single open connection to the configured store.

    Each call to ``execute`` runs in its own transaction so a failing statement
    never poisons the statements that follow it (PostgreSQL aborts the whole
    transaction on error).
    """

    def __init__(
        self,
        engine: Engine,
        connection: Connection,
        store_settings: Union[EmbeddedStoreSettings, NetworkedStoreSettings],
        logger: Optional[logging.Logger] = None,
    ):
        self.engine = engine
        self.store_settings = store_settings
        self.logger = logger or logging.getLogger(__name__)
        self._conn: Optional[Connection] = connection
        self._closed = False

    def __enter__(self) -> "MaintenanceConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def is_file_based(self) -> bool:
        return self.store_settings.is_file_based

    def _connection(self) -> Connection:
        if self._conn is None:
            raise AlreadyClosedError("Connection is closed")
        return self._conn

    def execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> Optional[int]:
        """
        Execute one statement in its own transaction.

        Plain scripts are sent to the driver as-is so colons and percent signs in
        literals are not mistaken for bind parameters. Use ``params`` for values.

        Returns:
            Optional[int]: Affected row count, or None when the driver reports none
                           (DDL statements report -1)

        Raises:
            SQLAlchemyError: Any driver error; the transaction is rolled back first
        """
        conn = self._connection()
        with conn.begin():
            if params:
                result = conn.execute(text(sql), dict(params))
            else:
                result = conn.exec_driver_sql(sql)
            rowcount = result.rowcount
        if rowcount is None or rowcount < 0:
            return None
        return int(rowcount)

    def fetch_all(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a read-only query and return rows as dictionaries.

        Without ``params`` the query goes to the driver as-is, like ``execute``,
        so ``:name`` inside a literal is not taken for a bind parameter.
        """
        conn = self._connection()
        with conn.begin():
            if params:
                result = conn.execute(text(sql), dict(params))
            else:
                result = conn.exec_driver_sql(sql)
            return [dict(row) for row in result.mappings()]

    def fetch_scalar(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        conn = self._connection()
        with conn.begin():
            return conn.execute(text(sql), dict(params or {})).scalar()

    def table_names(self) -> List[str]:
        """List user tables in the store."""
        conn = self._connection()
        with conn.begin():
            return sorted(inspect(conn).get_table_names())

    def column_info(self, table_name: str) -> List[Dict[str, Any]]:
        conn = self._connection()
        with conn.begin():
            return [
                {
                    "name": col["name"],
                    "type": str(col["type"]),
                    "nullable": col.get("nullable", True),
                    "default": col.get("default"),
                }
                for col in inspect(conn).get_columns(table_name)
            ]

    def close(self) -> None:
        """
        Release the connection and dispose of the engine.

        Raises:
            AlreadyClosedError: If the connection was already closed
        """
        if self._closed:
            raise AlreadyClosedError("Connection has already been closed")

        self._closed = True
        try:
            if self._conn is not None:
                self._conn.close()
        finally:
            self._conn = None
            self.engine.dispose()
            self.logger.info("🔒 Database connection closed")


def create_store_engine(
    store_settings: Union[EmbeddedStoreSettings, NetworkedStoreSettings],
) -> Engine:
    """
    Create a SQLAlchemy engine for the given store settings.

    Raises:
        ConfigurationError: If networked settings are incomplete
    """
    url = store_settings.get_database_url()
    if store_settings.kind == "postgres":
        return create_engine(url, pool_pre_ping=True)
    return create_engine(url)


def open_connection(
    store_settings: Union[EmbeddedStoreSettings, NetworkedStoreSettings],
    logger: Optional[logging.Logger] = None,
    create_if_missing: bool = False,
) -> MaintenanceConnection:
    """
    Open the single connection used by a maintenance run.

    Args:
        store_settings: Immutable store snapshot from ``Config.store_settings()``
        logger: Logger for connection events
        create_if_missing: For embedded stores, allow SQLite to create a new file.
                           Off by default so a mistyped path is an error, not an empty database.

    Returns:
        MaintenanceConnection: Open connection; close it exactly once

    Raises:
        DatabaseConnectionError: If the store cannot be opened
    """
    logger = logger or logging.getLogger(__name__)

    if store_settings.kind == "sqlite":
        if not create_if_missing and not os.path.isfile(store_settings.path):
            raise DatabaseConnectionError(
                f"SQLite database file not found: {os.path.abspath(store_settings.path)}"
            )
        logger.info(f"📁 Database path: {os.path.abspath(store_settings.path)}")

    try:
        engine = create_store_engine(store_settings)
    except ValueError as e:
        raise DatabaseConnectionError(f"Invalid database configuration: {e}") from e

    try:
        connection = engine.connect()
    except SQLAlchemyError as e:
        engine.dispose()
        raise DatabaseConnectionError(f"Could not connect to database: {e}") from e

    logger.info(f"✅ Connected to {store_settings.kind} database")
    return MaintenanceConnection(engine, connection, store_settings, logger)

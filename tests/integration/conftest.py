"""
Integration test fixtures and configuration.

SQLite integration tests run against real database files under tmp_path (see
tests/conftest.py). The PostgreSQL fixtures here connect to a disposable test
server and are skipped when POSTGRES_TEST_HOST is not set.

Key fixtures:
- postgres_engine: SQLAlchemy engine connected to the test server
- postgres_db: Shipping tables created for one test and dropped afterwards
- postgres_store: NetworkedStoreSettings pointing at the test server

Running integration tests:
    pytest tests/integration -v -m integration
    POSTGRES_TEST_HOST=localhost pytest tests/integration -v -m postgres
"""

import os
import time

import pytest
from pydantic import SecretStr
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine

from config.settings import NetworkedStoreSettings
from utils.logging import setup_logging

POSTGRES_SHIPPING_SCHEMA = {
    "clients": "id SERIAL PRIMARY KEY, name TEXT NOT NULL, phone TEXT",
    "shipments": "id SERIAL PRIMARY KEY, client_id INTEGER, tracking_number TEXT",
    "settings": "key TEXT PRIMARY KEY, value TEXT",
}


def wait_for_db(
    engine: Engine, max_retries: int = 5, retry_delay: float = 1.0
) -> None:
    """
    Wait for database to be ready by attempting connections.

    Args:
        engine: SQLAlchemy engine to test
        max_retries: Maximum number of connection attempts
        retry_delay: Delay between retries in seconds

    Raises:
        RuntimeError: If database doesn't become ready within max_retries
    """
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print(f"✅ Database ready after {attempt + 1} attempt(s)")
            return
        except Exception as e:
            if attempt < max_retries - 1:
                print(
                    f"⏳ Waiting for database (attempt {attempt + 1}/{max_retries})..."
                )
                time.sleep(retry_delay)
            else:
                raise RuntimeError(
                    f"Database not ready after {max_retries} attempts: {e}"
                ) from e


def _postgres_test_settings() -> NetworkedStoreSettings:
    """
    Environment Variables:
        POSTGRES_TEST_HOST: Test database host (required to run PostgreSQL tests)
        POSTGRES_TEST_PORT: Test database port (default: 5434)
        POSTGRES_TEST_DB: Test database name (default: shipping_test)
        POSTGRES_TEST_USER: Test database user (default: postgres)
        POSTGRES_TEST_PASSWORD: Test database password (default: test_password)
    """
    return NetworkedStoreSettings(
        host=os.environ["POSTGRES_TEST_HOST"],
        port=int(os.getenv("POSTGRES_TEST_PORT", "5434")),
        database=os.getenv("POSTGRES_TEST_DB", "shipping_test"),
        username=os.getenv("POSTGRES_TEST_USER", "postgres"),
        password=SecretStr(os.getenv("POSTGRES_TEST_PASSWORD", "test_password")),
    )


@pytest.fixture(scope="session")
def postgres_store() -> NetworkedStoreSettings:
    if not os.getenv("POSTGRES_TEST_HOST"):
        pytest.skip("POSTGRES_TEST_HOST not set - skipping PostgreSQL integration test")
    return _postgres_test_settings()


@pytest.fixture(scope="session")
def postgres_engine(postgres_store) -> Engine:
    """
    Create a SQLAlchemy engine for the test server, reused across the session.
    """
    url: URL = postgres_store.get_database_url()
    engine = create_engine(url)

    try:
        wait_for_db(engine)
    except RuntimeError as e:
        engine.dispose()
        pytest.skip(f"PostgreSQL test database unavailable: {e}")

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def postgres_db(postgres_engine: Engine) -> Engine:
    """
    Provide the shipping tables with 5 clients for each test.

    Tables are dropped after the test so each test starts from a clean state.
    """
    logger = setup_logging(logger_name="test_db", log_level="INFO")

    logger.info("📦 Creating test database schema...")
    with postgres_engine.begin() as conn:
        for table_name, columns in POSTGRES_SHIPPING_SCHEMA.items():
            conn.execute(text(f"DROP TABLE IF EXISTS {table_name} CASCADE"))
            conn.execute(text(f"CREATE TABLE {table_name} ({columns})"))
        for i in range(5):
            conn.execute(
                text("INSERT INTO clients (name, phone) VALUES (:name, :phone)"),
                {"name": f"Client {i + 1}", "phone": f"09{i:08d}"},
            )

    yield postgres_engine

    logger.info("🧹 Cleaning up test database...")
    with postgres_engine.begin() as conn:
        for table_name in POSTGRES_SHIPPING_SCHEMA:
            conn.execute(text(f"DROP TABLE IF EXISTS {table_name} CASCADE"))

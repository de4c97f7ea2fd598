"""
Configuration settings for the shipping back-office maintenance tools.

This module centralizes all configuration values and provides a single source of truth for all
configurable parameters. Values are read from the environment (and an optional ``.env`` file)
once, when the module is imported, and every maintenance run works from the immutable store
snapshot returned by ``Config.store_settings()``.
"""

import os
from typing import Annotated, Any, Dict, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from sqlalchemy.engine import URL, make_url

# Load .env from the project root (no-op if the file does not exist)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a usable database store."""


class EmbeddedStoreSettings(BaseModel):
    """Settings for a file-based SQLite store."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sqlite"] = "sqlite"
    path: str = Field(..., min_length=1, description="Path to the SQLite database file")

    @property
    def is_file_based(self) -> bool:
        return True

    def get_database_url(self) -> URL:
        return URL.create("sqlite", database=self.path)

    def describe(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": os.path.abspath(self.path)}


class NetworkedStoreSettings(BaseModel):
    """
    Settings for a PostgreSQL server store.

    Either ``url`` is set, or the individual host/user/password/database fields are.
    Individual fields win when both are complete.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["postgres"] = "postgres"
    host: Optional[str] = None
    port: int = 5432
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    sslmode: Optional[str] = None
    url: Optional[SecretStr] = None

    @property
    def is_file_based(self) -> bool:
        return False

    @property
    def has_individual_settings(self) -> bool:
        return bool(self.host and self.username and self.password and self.database)

    def get_database_url(self) -> URL:
        """
        Build the SQLAlchemy connection URL.

        Raises:
            ConfigurationError: If neither a URL nor a complete set of individual settings is present
        """
        if self.has_individual_settings:
            query = {"sslmode": self.sslmode} if self.sslmode else {}
            return URL.create(
                "postgresql+psycopg2",
                username=self.username,
                password=self.password.get_secret_value(),
                host=self.host,
                port=self.port,
                database=self.database,
                query=query,
            )

        if self.url is not None:
            url = make_url(self.url.get_secret_value())
            # postgres:// and postgresql:// both map onto the psycopg2 driver
            if url.drivername in ("postgres", "postgresql"):
                url = url.set(drivername="postgresql+psycopg2")
            return url

        raise ConfigurationError(
            "PostgreSQL configuration incomplete: either set DATABASE_URL or all of "
            "DB_HOST, DB_USERNAME, DB_PASSWORD and DB_NAME."
        )

    def describe(self) -> Dict[str, Any]:
        source = "individual variables" if self.has_individual_settings else "DATABASE_URL"
        url = self.get_database_url()
        return {
            "kind": self.kind,
            "source": source,
            "url": url.render_as_string(hide_password=True),
            "sslmode": self.sslmode,
        }


StoreSettings = Annotated[
    Union[EmbeddedStoreSettings, NetworkedStoreSettings], Field(discriminator="kind")
]


class Config:
    """
    Central configuration class for the maintenance tools.

    This class consolidates all configuration values including the database store,
    backup behaviour, verification defaults and logging.
    """

    # Database Configuration
    DB_TYPE: str = "sqlite"
    DB_PATH: str = "./database.sqlite"
    DATABASE_URL: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: int = 5432
    DB_NAME: Optional[str] = None
    DB_USERNAME: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_SSLMODE: Optional[str] = None

    # Backup Configuration
    BACKUP_DIR_NAME: str = "backups"
    BACKUP_SUFFIX: str = "-backup-before-clear"
    BACKUP_REQUIRED: bool = False

    # Verification
    VERIFY_SAMPLE_LIMIT: int = 5

    # File Paths
    CLEAR_LOG_FILE: str = "logs/clear_database.log"
    MIGRATION_LOG_FILE: str = "logs/run_migration.log"
    BACKFILL_LOG_FILE: str = "logs/backfill_column.log"
    CHECK_LOG_FILE: str = "logs/check_database.log"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 3

    SUPPORTED_DB_TYPES = ("sqlite", "postgres")

    def __init__(self):
        """Initialize configuration by loading from environment variables."""
        self._load_from_env()
        self._validate()

    def _load_from_env(self):
        """Load configuration values from environment variables."""
        db_type = os.getenv("DB_TYPE")
        if db_type:
            self.DB_TYPE = db_type.strip().lower()

        db_path = os.getenv("DB_PATH")
        if db_path:
            self.DB_PATH = db_path

        database_url = os.getenv("DATABASE_URL")
        if database_url:
            self.DATABASE_URL = database_url

        db_host = os.getenv("DB_HOST")
        if db_host:
            self.DB_HOST = db_host

        db_port = os.getenv("DB_PORT")
        if db_port:
            self.DB_PORT = int(db_port)

        # DB_DATABASE is accepted as an alias used by older deployments
        db_name = os.getenv("DB_NAME") or os.getenv("DB_DATABASE")
        if db_name:
            self.DB_NAME = db_name

        db_user = os.getenv("DB_USERNAME")
        if db_user:
            self.DB_USERNAME = db_user

        db_password = os.getenv("DB_PASSWORD")
        if db_password:
            self.DB_PASSWORD = db_password

        db_sslmode = os.getenv("DB_SSLMODE")
        if db_sslmode:
            self.DB_SSLMODE = db_sslmode

        # Backup settings
        backup_dir = os.getenv("BACKUP_DIR_NAME")
        if backup_dir:
            self.BACKUP_DIR_NAME = backup_dir

        backup_required = os.getenv("BACKUP_REQUIRED")
        if backup_required:
            self.BACKUP_REQUIRED = backup_required.strip().lower() in ("1", "true", "yes")

        sample_limit = os.getenv("VERIFY_SAMPLE_LIMIT")
        if sample_limit:
            self.VERIFY_SAMPLE_LIMIT = int(sample_limit)

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            self.LOG_LEVEL = log_level

    def _validate(self):
        """
        Validate configuration values that never depend on the selected operation.

        Raises:
            ConfigurationError: If DB_TYPE is not a supported store kind.
        """
        if self.DB_TYPE not in self.SUPPORTED_DB_TYPES:
            raise ConfigurationError(
                f"Unsupported DB_TYPE '{self.DB_TYPE}'. "
                f"Expected one of: {', '.join(self.SUPPORTED_DB_TYPES)}"
            )

        if self.VERIFY_SAMPLE_LIMIT < 0:
            raise ConfigurationError("VERIFY_SAMPLE_LIMIT must be >= 0")

    def validate_for_database_operations(self) -> None:
        """
        Validate that the selected store can actually be connected to.

        Raises:
            ConfigurationError: If the networked store settings are incomplete.
        """
        if self.DB_TYPE == "postgres":
            # Raises ConfigurationError when incomplete
            self.store_settings().get_database_url()

    def store_settings(self) -> Union[EmbeddedStoreSettings, NetworkedStoreSettings]:
        """
        Resolve the store kind once and return an immutable settings snapshot.

        Returns:
            EmbeddedStoreSettings or NetworkedStoreSettings, depending on DB_TYPE
        """
        if self.DB_TYPE == "postgres":
            return NetworkedStoreSettings(
                host=self.DB_HOST,
                port=self.DB_PORT,
                database=self.DB_NAME,
                username=self.DB_USERNAME,
                password=SecretStr(self.DB_PASSWORD) if self.DB_PASSWORD else None,
                sslmode=self.DB_SSLMODE,
                url=SecretStr(self.DATABASE_URL) if self.DATABASE_URL else None,
            )

        return EmbeddedStoreSettings(path=self.DB_PATH)

    def describe(self) -> Dict[str, Any]:
        """
        Return a redacted view of the configuration for diagnostics.

        Secrets are never included; only whether they are set.
        """
        return {
            "db_type": self.DB_TYPE,
            "db_path": self.DB_PATH if self.DB_TYPE == "sqlite" else None,
            "database_url": "SET" if self.DATABASE_URL else "NOT SET",
            "db_host": self.DB_HOST,
            "db_port": self.DB_PORT,
            "db_name": self.DB_NAME,
            "db_username": self.DB_USERNAME,
            "db_password": "SET" if self.DB_PASSWORD else "NOT SET",
            "backup_dir_name": self.BACKUP_DIR_NAME,
            "backup_required": self.BACKUP_REQUIRED,
            "log_level": self.LOG_LEVEL,
        }


# Global configuration instance
config = Config()

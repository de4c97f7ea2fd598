"""
Backup guard for destructive maintenance operations.

Before rows are deleted or a script is replayed, the embedded database file is
copied byte-for-byte into a ``backups/`` directory next to it. Networked stores
have no file to copy; for them the guard is a no-op.
"""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from typing import Optional, Union

from config.settings import EmbeddedStoreSettings, NetworkedStoreSettings
from scripts.database.errors import BackupError
from scripts.database.outcomes import BackupRecord

DEFAULT_BACKUP_SUFFIX = "-backup-before-clear"
DEFAULT_BACKUP_DIR_NAME = "backups"


def build_backup_path(
    source_path: str,
    suffix: str = DEFAULT_BACKUP_SUFFIX,
    backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
    timestamp: Optional[datetime] = None,
) -> str:
    """
    Construct ``<dir>/<backup_dir_name>/<stem><suffix>[-<timestamp>]<ext>``.

    Args:
        source_path (str): Path of the database file
        suffix (str): Fixed suffix appended to the file stem
        backup_dir_name (str): Name of the backup directory next to the source file
        timestamp (datetime, optional): When given, appended as YYYYmmddHHMMSS so
                                        successive backups do not overwrite each other

    Returns:
        str: Destination path for the backup copy
    """
    directory = os.path.dirname(os.path.abspath(source_path))
    stem, ext = os.path.splitext(os.path.basename(source_path))
    name = f"{stem}{suffix}"
    if timestamp is not None:
        name += f"-{timestamp.strftime('%Y%m%d%H%M%S')}"
    return os.path.join(directory, backup_dir_name, f"{name}{ext}")


def copy_store_file(source_path: str, backup_path: str) -> None:
    """
    Copy the database file to its backup path, creating the backup directory.

    Raises:
        BackupError: If the source is missing or the copy fails
    """
    if not os.path.isfile(source_path):
        raise BackupError(f"Database file not found: {source_path}")

    try:
        os.makedirs(os.path.dirname(backup_path), exist_ok=True)
        shutil.copyfile(source_path, backup_path)
    except OSError as e:
        raise BackupError(f"Could not copy {source_path} to {backup_path}: {e}") from e


def backup_store(
    store_settings: Union[EmbeddedStoreSettings, NetworkedStoreSettings],
    suffix: str = DEFAULT_BACKUP_SUFFIX,
    backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
    timestamped: bool = False,
    required: bool = False,
    logger: Optional[logging.Logger] = None,
) -> BackupRecord:
    """
    Back up the store before a destructive operation.

    Exactly one copy is attempted per call. A failed copy is logged and
    recorded on the returned record; it only raises when ``required`` is set.

    Args:
        store_settings: Immutable store snapshot
        suffix (str): Suffix for the backup file stem
        backup_dir_name (str): Backup directory name
        timestamped (bool): Append a timestamp to the backup file name
        required (bool): Raise instead of warning when the copy fails
        logger (logging.Logger, optional): Logger for backup events

    Returns:
        BackupRecord: ``backup_path`` is None for networked stores and failed copies

    Raises:
        BackupError: If the copy fails and ``required`` is True
    """
    logger = logger or logging.getLogger(__name__)
    created_at = datetime.now()

    if not store_settings.is_file_based:
        logger.info("ℹ️  Networked database - no file to back up, skipping backup")
        return BackupRecord(created_at=created_at)

    source_path = os.path.abspath(store_settings.path)
    backup_path = build_backup_path(
        source_path,
        suffix=suffix,
        backup_dir_name=backup_dir_name,
        timestamp=created_at if timestamped else None,
    )

    try:
        copy_store_file(source_path, backup_path)
    except BackupError as e:
        if required:
            logger.error(f"❌ Backup failed and is required: {e}")
            raise
        logger.warning(f"⚠️  Backup was not created: {e}")
        return BackupRecord(
            source_path=source_path, created_at=created_at, error_message=str(e)
        )

    logger.info(f"💾 Backup created: {backup_path}")
    return BackupRecord(
        source_path=source_path, backup_path=backup_path, created_at=created_at
    )

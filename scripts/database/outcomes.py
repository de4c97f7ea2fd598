"""
Operational models shared by the maintenance tools.

These pydantic models describe what a maintenance run targets and what it
produced: target tables, parsed script statements, per-target outcomes,
aggregated reports and backup records.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Plain or schema-qualified SQL identifiers only; names are interpolated into statements
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Error text fragments meaning "the object is absent" or "this was already applied".
# Both make a re-run of a maintenance script a no-op rather than a failure.
ABSENT_OBJECT_SIGNATURES = (
    "no such table",
    "no such column",
    "does not exist",
    "duplicate column",
    "already exists",
)


# PostgreSQL SQLSTATEs for the same conditions: undefined_table, undefined_column,
# duplicate_column, duplicate_table
ABSENT_OBJECT_PGCODES = frozenset({"42P01", "42703", "42701", "42P07"})


def is_absent_object_error(message: str, pgcode: Optional[str] = None) -> bool:
    """
    Return True if a driver error signals a missing or already-present object.

    Args:
        message (str): Driver error message
        pgcode (str, optional): PostgreSQL SQLSTATE; when given it decides alone

    Only the first line of the message is matched. PostgreSQL appends DETAIL
    lines such as "Key (id)=(1) already exists." to constraint violations.
    """
    if pgcode:
        return pgcode in ABSENT_OBJECT_PGCODES
    lines = message.strip().splitlines()
    if not lines:
        return False
    lowered = lines[0].lower()
    return any(signature in lowered for signature in ABSENT_OBJECT_SIGNATURES)


def driver_error_details(error: Exception) -> Tuple[str, Optional[str]]:
    """
    Extract the driver message and PostgreSQL SQLSTATE from a SQLAlchemy error.

    Returns:
        Tuple[str, Optional[str]]: Message without SQLAlchemy's statement suffix,
                                   and the SQLSTATE (None for other drivers)
    """
    orig = getattr(error, "orig", None)
    if orig is None:
        return str(error), None
    return str(orig).strip(), getattr(orig, "pgcode", None)


class OperationStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    FAILED = "failed"


class TargetTable(BaseModel):
    """A table named by the caller as the target of a bulk operation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Table name (optionally schema-qualified)")
    may_not_exist: bool = Field(
        default=True, description="Treat 'no such table' as skipped rather than failed"
    )

    @field_validator("name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"'{v}' is not a valid table identifier")
        return v


class MaintenanceStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    ordinal: int = Field(..., ge=1, description="1-based position in the original script")
    text: str = Field(..., min_length=1)

    def preview(self, width: int = 60) -> str:
        """Single-line abbreviation of the statement for log output."""
        flat = " ".join(self.text.split())
        return flat if len(flat) <= width else flat[: width - 3] + "..."


class OperationOutcome(BaseModel):
    """Result of applying one operation to one target."""

    model_config = ConfigDict(frozen=True)

    target: str
    status: OperationStatus
    affected_count: Optional[int] = None
    error_message: Optional[str] = None

    @classmethod
    def succeeded(cls, target: str, affected_count: Optional[int] = None) -> "OperationOutcome":
        return cls(target=target, status=OperationStatus.SUCCEEDED, affected_count=affected_count)

    @classmethod
    def skipped(cls, target: str, error_message: Optional[str] = None) -> "OperationOutcome":
        return cls(
            target=target,
            status=OperationStatus.SKIPPED_NOT_FOUND,
            error_message=error_message,
        )

    @classmethod
    def failed(cls, target: str, error_message: str) -> "OperationOutcome":
        return cls(target=target, status=OperationStatus.FAILED, error_message=error_message)

    def describe(self) -> str:
        if self.status == OperationStatus.SUCCEEDED:
            if self.affected_count is None:
                return f"✅ {self.target}: succeeded"
            return f"✅ {self.target}: succeeded ({self.affected_count} rows affected)"
        if self.status == OperationStatus.SKIPPED_NOT_FOUND:
            return f"⚠️  {self.target}: skipped ({self.error_message or 'not found'})"
        return f"❌ {self.target}: failed - {self.error_message}"


class OutcomeReport(BaseModel):
    """Ordered outcomes of one pass (e.g. 'delete rows') over its targets."""

    name: str
    outcomes: List[OperationOutcome] = Field(default_factory=list)

    def add(self, outcome: OperationOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: OperationStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def has_failures(self) -> bool:
        return self.count(OperationStatus.FAILED) > 0

    @property
    def targets(self) -> List[str]:
        return [outcome.target for outcome in self.outcomes]

    def summary_lines(self) -> List[str]:
        """Human-readable lines: a header, one line per target, and a totals line."""
        lines = [f"📋 {self.name}:"]
        lines.extend(f"  {outcome.describe()}" for outcome in self.outcomes)
        lines.append(
            f"  Total: {len(self.outcomes)} | "
            f"succeeded: {self.count(OperationStatus.SUCCEEDED)} | "
            f"skipped: {self.count(OperationStatus.SKIPPED_NOT_FOUND)} | "
            f"failed: {self.count(OperationStatus.FAILED)}"
        )
        return lines


class BackupRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_path: Optional[str] = None
    backup_path: Optional[str] = None
    created_at: datetime
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.backup_path is not None

    @property
    def failed(self) -> bool:
        return self.error_message is not None

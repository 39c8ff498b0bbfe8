"""
upload_ingestion.domain.types -- Pure frozen dataclasses for the upload pipeline.

ZERO I/O.  The ORM layer converts to and from these DTOs; services and the
background processor only ever exchange DTOs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class JobStatus(str, Enum):
    """Job lifecycle status. Moves forward only."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_JOB_STATUSES


_TERMINAL_JOB_STATUSES = frozenset({
    JobStatus.COMPLETED,
    JobStatus.COMPLETED_WITH_ERRORS,
    JobStatus.FAILED,
})


class WorkItemStatus(str, Enum):
    """Per-row lifecycle status."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    COMPLETED = "completed"


class FileFormat(str, Enum):
    """Tabular formats accepted for upload."""

    CSV = "csv"
    XLSX = "xlsx"


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class RowRecord:
    """
    One normalized data row.

    ``values`` holds the configured known columns in configured order (blank
    cells are ``None``).  ``extras`` holds every other column together with
    the job-level constant fields, passed through untouched.
    """

    values: dict[str, str | None] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.values:
            return self.values[name]
        return self.extras.get(name, default)

    def as_payload(self) -> dict[str, Any]:
        """Flatten to the stored ``data`` mapping. Extras win on collision."""
        payload: dict[str, Any] = dict(self.values)
        payload.update(self.extras)
        return payload

    @classmethod
    def from_payload(
        cls, payload: dict[str, Any], known_columns: tuple[str, ...] | list[str] = (),
    ) -> RowRecord:
        """Split a stored payload back into known values and extras."""
        known = [c for c in known_columns if c in payload]
        values = {c: payload[c] for c in known}
        extras = {k: v for k, v in payload.items() if k not in values}
        return cls(values=values, extras=extras)


# =============================================================================
# Job and Work Item DTOs
# =============================================================================


@dataclass(frozen=True)
class UploadJob:
    """Immutable snapshot of one uploaded file."""

    job_id: UUID
    object_type: str
    status: JobStatus
    uploaded_by: str
    organisation_scope: str | None = None
    file_format: FileFormat = FileFormat.CSV
    task_count: int = 0
    succeeded_count: int = 0
    failed_count: int = 0
    failure_result: str | None = None
    created_on: datetime | None = None
    process_start_time: datetime | None = None
    last_updated_on: datetime | None = None


@dataclass(frozen=True)
class WorkItem:
    """Immutable snapshot of one data row's unit of work."""

    job_id: UUID
    sequence_id: int
    status: WorkItemStatus
    data: dict[str, Any]
    success_result: dict[str, Any] | None = None
    failure_result: dict[str, Any] | None = None
    iteration_id: int = 0
    created_on: datetime | None = None
    last_updated_on: datetime | None = None


@dataclass(frozen=True)
class FlushResult:
    """Outcome of one BatchWriter insert/update call."""

    written: int = 0
    failed_sequence_ids: tuple[int, ...] = ()
    batches: int = 0
    fallback_batches: int = 0

    @property
    def failed(self) -> int:
        return len(self.failed_sequence_ids)

    def merge(self, other: FlushResult) -> FlushResult:
        return FlushResult(
            written=self.written + other.written,
            failed_sequence_ids=self.failed_sequence_ids + other.failed_sequence_ids,
            batches=self.batches + other.batches,
            fallback_batches=self.fallback_batches + other.fallback_batches,
        )


@dataclass(frozen=True)
class SupportedColumns:
    """
    Column aliasing served by the lookup service for one object type.

    ``alias_map`` maps an external header name to its internal field name;
    ``mandatory_columns`` lists internal names every upload must carry.
    """

    alias_map: dict[str, str] = field(default_factory=dict)
    mandatory_columns: tuple[str, ...] = ()

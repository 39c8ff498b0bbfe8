"""
Upload ORM models: one row per Job, one row per Work Item.

Contract:
    UploadJobModel and WorkItemModel persist the DTOs of
    upload_ingestion.domain.types.  ``data`` and the result payloads are
    stored as JSON.  Work Items are unique on (job_id, sequence_id) and are
    removed with their Job (ON DELETE CASCADE).

Architecture: upload_ingestion/models. Imports from upload_kernel.db.base only.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from upload_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from upload_ingestion.domain.types import UploadJob, WorkItem


def _to_json_safe(obj: Any) -> Any:
    """Convert payload values to JSON-serializable form."""
    if isinstance(obj, dict):
        return {str(k): _to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_json_safe(v) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    return obj


class UploadJobModel(Base):
    """Parent record for one uploaded file."""

    __tablename__ = "upload_jobs"

    object_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(200), nullable=False)
    organisation_scope: Mapped[str | None] = mapped_column(String(200), nullable=True)
    file_format: Mapped[str] = mapped_column(String(20), nullable=False, default="csv")
    task_count: Mapped[int] = mapped_column(default=0, nullable=False)
    succeeded_count: Mapped[int] = mapped_column(default=0, nullable=False)
    failed_count: Mapped[int] = mapped_column(default=0, nullable=False)
    failure_result: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_on: Mapped[datetime | None] = mapped_column(nullable=True)
    process_start_time: Mapped[datetime | None] = mapped_column(nullable=True)
    last_updated_on: Mapped[datetime | None] = mapped_column(nullable=True)

    work_items: Mapped[list["WorkItemModel"]] = relationship(
        "WorkItemModel",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dto(self) -> UploadJob:
        from upload_ingestion.domain.types import FileFormat, JobStatus, UploadJob

        return UploadJob(
            job_id=self.id,
            object_type=self.object_type,
            status=JobStatus(self.status),
            uploaded_by=self.uploaded_by,
            organisation_scope=self.organisation_scope,
            file_format=FileFormat(self.file_format),
            task_count=self.task_count,
            succeeded_count=self.succeeded_count,
            failed_count=self.failed_count,
            failure_result=self.failure_result,
            created_on=self.created_on,
            process_start_time=self.process_start_time,
            last_updated_on=self.last_updated_on,
        )

    @classmethod
    def from_dto(cls, dto: UploadJob) -> UploadJobModel:
        model = cls(id=dto.job_id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: UploadJob) -> None:
        """Copy every mutable field of ``dto`` onto this row."""
        self.object_type = dto.object_type
        self.status = dto.status.value
        self.uploaded_by = dto.uploaded_by
        self.organisation_scope = dto.organisation_scope
        self.file_format = dto.file_format.value
        self.task_count = dto.task_count
        self.succeeded_count = dto.succeeded_count
        self.failed_count = dto.failed_count
        self.failure_result = dto.failure_result
        self.created_on = dto.created_on
        self.process_start_time = dto.process_start_time
        self.last_updated_on = dto.last_updated_on


class WorkItemModel(Base):
    """One data row of an upload and its processing outcome."""

    __tablename__ = "upload_work_items"

    __table_args__ = (
        UniqueConstraint("job_id", "sequence_id", name="uq_upload_work_items_job_sequence"),
        Index("ix_upload_work_items_job_status", "job_id", "status"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("upload_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence_id: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
    success_result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    failure_result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    iteration_id: Mapped[int] = mapped_column(default=0, nullable=False)
    created_on: Mapped[datetime | None] = mapped_column(nullable=True)
    last_updated_on: Mapped[datetime | None] = mapped_column(nullable=True)

    job: Mapped["UploadJobModel"] = relationship(
        "UploadJobModel",
        back_populates="work_items",
        foreign_keys=[job_id],
    )

    def to_dto(self) -> WorkItem:
        from upload_ingestion.domain.types import WorkItem, WorkItemStatus

        return WorkItem(
            job_id=self.job_id,
            sequence_id=self.sequence_id,
            status=WorkItemStatus(self.status),
            data=dict(self.data),
            success_result=dict(self.success_result) if self.success_result is not None else None,
            failure_result=dict(self.failure_result) if self.failure_result is not None else None,
            iteration_id=self.iteration_id,
            created_on=self.created_on,
            last_updated_on=self.last_updated_on,
        )

    @classmethod
    def from_dto(cls, dto: WorkItem) -> WorkItemModel:
        model = cls(job_id=dto.job_id, sequence_id=dto.sequence_id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: WorkItem) -> None:
        """Copy status, payloads and bookkeeping from ``dto`` onto this row."""
        self.status = dto.status.value
        self.data = _to_json_safe(dto.data)
        self.success_result = (
            _to_json_safe(dto.success_result) if dto.success_result is not None else None
        )
        self.failure_result = (
            _to_json_safe(dto.failure_result) if dto.failure_result is not None else None
        )
        self.iteration_id = dto.iteration_id
        self.created_on = dto.created_on
        self.last_updated_on = dto.last_updated_on

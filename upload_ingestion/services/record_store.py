"""
Record store: persistence of Jobs and Work Items.

Contract:
    RecordStore is the protocol the upload service, batch writer and
    background processor depend on.  SqlAlchemyRecordStore implements it on
    a Session.  Every write runs inside a SAVEPOINT (``begin_nested``), so a
    rejected batch is rolled back on its own and the same session can retry
    item by item.

Invariants:
    - The store commits only in ``commit()`` and, when built with
      ``commit_on_checkpoint=True``, in ``checkpoint()``.  Otherwise the
      caller owns the transaction.
    - Work Items are always listed in ``sequence_id`` order.

Failure modes:
    - IntegrityError (or any DB error) from a write propagates after its
      savepoint is rolled back.
    - WorkItemNotFoundError when an update targets a missing Work Item.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from upload_kernel.exceptions import JobNotFoundError, WorkItemNotFoundError
from upload_kernel.logging_config import get_logger

from upload_ingestion.domain.types import UploadJob, WorkItem, WorkItemStatus
from upload_ingestion.models.upload import UploadJobModel, WorkItemModel

logger = get_logger("ingestion.record_store")


@runtime_checkable
class RecordStore(Protocol):
    """Job and Work Item persistence."""

    def create_job(self, job: UploadJob) -> None: ...

    def update_job(self, job: UploadJob) -> None: ...

    def get_job(self, job_id: UUID) -> UploadJob | None: ...

    def create_work_items_batch(self, items: Sequence[WorkItem]) -> None: ...

    def create_work_item(self, item: WorkItem) -> None: ...

    def update_work_items_batch(self, items: Sequence[WorkItem]) -> None: ...

    def update_work_item(self, item: WorkItem) -> None: ...

    def list_work_items_not_completed(self, job_id: UUID) -> list[WorkItem]: ...

    def list_work_items(self, job_id: UUID) -> list[WorkItem]: ...

    def count_work_items_by_status(self, job_id: UUID) -> dict[WorkItemStatus, int]: ...

    def checkpoint(self) -> None: ...

    def commit(self) -> None: ...


class SqlAlchemyRecordStore:
    """RecordStore on a SQLAlchemy Session."""

    def __init__(self, session: Session, commit_on_checkpoint: bool = False):
        self._session = session
        self._commit_on_checkpoint = commit_on_checkpoint

    # -- Jobs ---------------------------------------------------------------

    def create_job(self, job: UploadJob) -> None:
        with self._session.begin_nested():
            self._session.add(UploadJobModel.from_dto(job))

    def update_job(self, job: UploadJob) -> None:
        with self._session.begin_nested():
            model = self._session.get(UploadJobModel, job.job_id)
            if model is None:
                raise JobNotFoundError(str(job.job_id))
            model.apply_dto(job)

    def get_job(self, job_id: UUID) -> UploadJob | None:
        model = self._session.get(UploadJobModel, job_id)
        return model.to_dto() if model is not None else None

    # -- Work Items ---------------------------------------------------------

    def create_work_items_batch(self, items: Sequence[WorkItem]) -> None:
        with self._session.begin_nested():
            self._session.add_all([WorkItemModel.from_dto(item) for item in items])

    def create_work_item(self, item: WorkItem) -> None:
        with self._session.begin_nested():
            self._session.add(WorkItemModel.from_dto(item))

    def update_work_items_batch(self, items: Sequence[WorkItem]) -> None:
        if not items:
            return
        with self._session.begin_nested():
            by_job: dict[UUID, list[WorkItem]] = {}
            for item in items:
                by_job.setdefault(item.job_id, []).append(item)
            for job_id, job_items in by_job.items():
                models = self._load_items(job_id, [i.sequence_id for i in job_items])
                for item in job_items:
                    model = models.get(item.sequence_id)
                    if model is None:
                        raise WorkItemNotFoundError(str(job_id), item.sequence_id)
                    model.apply_dto(item)

    def update_work_item(self, item: WorkItem) -> None:
        with self._session.begin_nested():
            model = self._load_items(item.job_id, [item.sequence_id]).get(item.sequence_id)
            if model is None:
                raise WorkItemNotFoundError(str(item.job_id), item.sequence_id)
            model.apply_dto(item)

    def list_work_items_not_completed(self, job_id: UUID) -> list[WorkItem]:
        stmt = (
            select(WorkItemModel)
            .where(WorkItemModel.job_id == job_id)
            .where(WorkItemModel.status != WorkItemStatus.COMPLETED.value)
            .order_by(WorkItemModel.sequence_id)
        )
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def list_work_items(self, job_id: UUID) -> list[WorkItem]:
        stmt = (
            select(WorkItemModel)
            .where(WorkItemModel.job_id == job_id)
            .order_by(WorkItemModel.sequence_id)
        )
        return [m.to_dto() for m in self._session.scalars(stmt)]

    def count_work_items_by_status(self, job_id: UUID) -> dict[WorkItemStatus, int]:
        stmt = (
            select(WorkItemModel.status, func.count())
            .where(WorkItemModel.job_id == job_id)
            .group_by(WorkItemModel.status)
        )
        return {WorkItemStatus(status): count for status, count in self._session.execute(stmt)}

    # -- Transaction --------------------------------------------------------

    def checkpoint(self) -> None:
        """Make everything written so far durable (commit) or visible (flush)."""
        if self._commit_on_checkpoint:
            self._session.commit()
        else:
            self._session.flush()
        logger.debug("store_checkpoint", extra={"committed": self._commit_on_checkpoint})

    def commit(self) -> None:
        """Commit the session so other sessions see everything written so far."""
        self._session.commit()
        logger.debug("store_committed")

    def _load_items(self, job_id: UUID, sequence_ids: list[int]) -> dict[int, WorkItemModel]:
        stmt = (
            select(WorkItemModel)
            .where(WorkItemModel.job_id == job_id)
            .where(WorkItemModel.sequence_id.in_(sequence_ids))
        )
        return {m.sequence_id: m for m in self._session.scalars(stmt)}

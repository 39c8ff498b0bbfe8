"""
Upload service: parse -> validate -> persist -> enqueue.

The synchronous submission entry point.  A file is fully parsed and its
header validated before anything is written, so client input errors leave
no Job behind.  Once the Job exists, any failure marks it FAILED with the
exception message, commits that state and re-raises.  The Job id is handed
to the JobQueue only after the Job and its Work Items are committed, so a
worker on another session always finds them.

Uses structured logging (LogContext, get_logger("ingestion.*")).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol, runtime_checkable
from uuid import UUID, uuid4

from upload_config.schema import UploadSettings
from upload_kernel.domain.clock import Clock, SystemClock
from upload_kernel.exceptions import (
    NoRootOrgAssociatedError,
    UnsupportedObjectTypeError,
    WorkItemsNotPersistedError,
)
from upload_kernel.logging_config import LogContext, get_logger

from upload_ingestion.adapters.base import parser_for
from upload_ingestion.domain.header import (
    build_column_rules,
    validate_file_shape,
    validate_with_rules,
)
from upload_ingestion.domain.types import FileFormat, JobStatus, UploadJob
from upload_ingestion.mapping.row_mapper import iter_work_items
from upload_ingestion.services.batch_writer import BatchWriter
from upload_ingestion.services.lookup import (
    ConfigLookupService,
    IdentityService,
    LookupService,
    resolve_requester_scope,
)
from upload_ingestion.services.record_store import RecordStore

logger = get_logger("ingestion.upload_service")


@runtime_checkable
class JobQueue(Protocol):
    """Hand-off of a Job id to background processing (at-least-once)."""

    def enqueue(self, job_id: UUID) -> None: ...


class UploadService:
    """Accepts an uploaded file and turns it into a Job with NEW Work Items."""

    def __init__(
        self,
        store: RecordStore,
        settings: UploadSettings,
        clock: Clock | None = None,
        lookup: LookupService | None = None,
        identity: IdentityService | None = None,
        queue: JobQueue | None = None,
    ):
        self._store = store
        self._settings = settings
        self._clock = clock or SystemClock()
        self._lookup = lookup if lookup is not None else ConfigLookupService(settings)
        self._identity = identity
        self._queue = queue
        self._writer = BatchWriter(store, batch_size=settings.write_batch_size)

    def submit(
        self,
        file_bytes: bytes,
        object_type: str,
        requested_by: str,
        file_format: str | None = None,
    ) -> UUID:
        """
        Validate and store an upload, then enqueue it for processing.

        Returns:
            The new Job id.

        Raises:
            ClientInputError: the file or its header was rejected; nothing stored.
            NoRootOrgAssociatedError: the object type needs a channel and the
                requester has none; the Job is stored as FAILED.
            WorkItemsNotPersistedError: no Work Item could be written; the Job
                is stored as FAILED.
        """
        config = self._settings.object_types.get(object_type)
        if config is None:
            raise UnsupportedObjectTypeError(object_type, tuple(sorted(self._settings.object_types)))

        fmt = file_format or self._settings.default_file_format
        parser = parser_for(fmt)
        rows = parser.parse(file_bytes)
        data_rows = validate_file_shape(rows, self._settings.max_rows)

        rules = build_column_rules(config, self._lookup.get_supported_columns(object_type))
        validate_with_rules(rows[0], rules)

        scope = resolve_requester_scope(self._identity, requested_by)
        now = self._clock.now()
        job = UploadJob(
            job_id=uuid4(),
            object_type=object_type,
            status=JobStatus.NEW,
            uploaded_by=requested_by,
            organisation_scope=scope.root_org_id,
            file_format=FileFormat(parser.file_format),
            created_on=now,
            last_updated_on=now,
        )

        with LogContext.bind(
            correlation_id=str(job.job_id),
            actor_id=requested_by,
            producer="ingestion",
            object_type=object_type,
        ):
            self._store.create_job(job)
            logger.info(
                "job_created",
                extra={"file_format": fmt, "data_rows": data_rows},
            )

            if config.require_channel and not scope.channel:
                error = NoRootOrgAssociatedError(requested_by)
                self._fail_job(job, str(error))
                raise error

            constants = {"channel": scope.channel} if scope.channel else {}
            try:
                items = list(iter_work_items(rows, rules, job.job_id, now, constants))
                result = self._writer.insert(items)
                if items and result.written == 0:
                    raise WorkItemsNotPersistedError(str(job.job_id), len(items))

                job = replace(job, task_count=data_rows, last_updated_on=self._clock.now())
                self._store.update_job(job)
                self._store.commit()
            except Exception as exc:
                logger.error("job_ingestion_failed", exc_info=True)
                self._fail_job(job, str(exc))
                raise

            logger.info(
                "job_submitted",
                extra={
                    "task_count": data_rows,
                    "written": result.written,
                    "failed_sequence_ids": list(result.failed_sequence_ids),
                },
            )

        if self._queue is not None:
            self._queue.enqueue(job.job_id)
        return job.job_id

    def _fail_job(self, job: UploadJob, message: str) -> None:
        failed = replace(
            job,
            status=JobStatus.FAILED,
            failure_result=message,
            last_updated_on=self._clock.now(),
        )
        self._store.update_job(failed)
        self._store.commit()
        logger.warning("job_failed", extra={"failure_result": message})

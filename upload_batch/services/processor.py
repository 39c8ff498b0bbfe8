"""
BackgroundProcessor -- one processing pass over one upload Job.

Contract:
    ``run_pass()`` loads the Job, moves it NEW -> IN_PROGRESS, runs the
    registered handler over every Work Item that is not COMPLETED (in
    sequence order), persists the touched items in batches and rolls the
    Job status up from the stored Work Item statuses.

Architecture: upload_batch/services.  Depends on the RecordStore protocol,
    the BatchWriter and the HandlerRegistry; never on a Session directly
    (``run_processing_pass`` wires those for a session factory).

Invariants enforced:
    - COMPLETED items are never handed to a handler again.
    - Every touched item gets ``last_updated_on`` from the Clock and
      ``iteration_id`` + 1.
    - Job status only moves forward; a terminal Job is left untouched.
    - After every flushed batch the store is checkpointed, so an
      interrupted pass keeps the work already flushed.

Failure modes:
    - JobNotFoundError / HandlerNotRegisteredError before anything is touched.
    - A handler exception fails only that item.
    - A Work Item that cannot be persisted keeps its stored status and is
      picked up by the next pass.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from upload_kernel.domain.clock import Clock, SystemClock
from upload_kernel.exceptions import JobNotFoundError
from upload_kernel.logging_config import LogContext, get_logger

from upload_batch.domain.enrichment import EnrichmentCache
from upload_batch.domain.rollup import failure_summary, rollup_status
from upload_batch.domain.types import ItemOutcome, PassResult
from upload_batch.tasks.base import HandlerRegistry, ProcessingContext, WorkItemHandler
from upload_ingestion.domain.types import (
    FlushResult,
    JobStatus,
    UploadJob,
    WorkItem,
    WorkItemStatus,
)
from upload_ingestion.services.batch_writer import DEFAULT_BATCH_SIZE, BatchWriter
from upload_ingestion.services.record_store import RecordStore, SqlAlchemyRecordStore

logger = get_logger("batch.processor")


class BackgroundProcessor:
    """Drives the Work Items of one Job towards a terminal outcome.

    Non-goals:
        - Does NOT decide when to run -- the JobDispatcher triggers passes.
        - Does NOT guard against two concurrent passes on one Job; the
          dispatcher serialises passes per Job.
    """

    def __init__(
        self,
        store: RecordStore,
        registry: HandlerRegistry,
        clock: Clock | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._store = store
        self._registry = registry
        self._clock = clock or SystemClock()
        self._writer = BatchWriter(store, batch_size=batch_size)
        self._batch_size = batch_size

    def run_pass(self, job_id: UUID) -> PassResult:
        """Run exactly one processing pass over ``job_id``.

        Raises:
            JobNotFoundError: If the Job does not exist.
            HandlerNotRegisteredError: If no handler serves the Job's object type.
        """
        start_time = time.monotonic()

        job = self._store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))

        with LogContext.bind(
            correlation_id=str(job_id),
            actor_id=job.uploaded_by,
            producer="processor",
            object_type=job.object_type,
        ):
            if job.status.is_terminal:
                logger.info("pass_skipped_terminal_job", extra={"status": job.status.value})
                return PassResult(job_id=job_id, status=job.status, skipped=True)

            handler = self._registry.get(job.object_type)

            started_at = self._clock.now()
            if job.status == JobStatus.NEW:
                job = replace(
                    job,
                    status=JobStatus.IN_PROGRESS,
                    process_start_time=started_at,
                    last_updated_on=started_at,
                )
                self._store.update_job(job)
                self._store.checkpoint()

            items = self._store.list_work_items_not_completed(job_id)
            logger.info("pass_started", extra={"pending_items": len(items)})

            context = ProcessingContext(job=job, cache=EnrichmentCache())
            flushed = FlushResult()
            touched: list[WorkItem] = []
            outcomes: dict[WorkItemStatus, int] = {}

            for item in items:
                done = self._process_item(handler, item, context)
                outcomes[done.status] = outcomes.get(done.status, 0) + 1
                touched.append(done)
                if len(touched) >= self._batch_size:
                    flushed = flushed.merge(self._flush(touched))
                    touched = []
            if touched:
                flushed = flushed.merge(self._flush(touched))

            job = self._rollup(job)
            completed_at = self._clock.now()
            duration_ms = int((time.monotonic() - start_time) * 1000)

            logger.info(
                "pass_completed",
                extra={
                    "status": job.status.value,
                    "processed": len(items),
                    "completed": outcomes.get(WorkItemStatus.COMPLETED, 0),
                    "failed": outcomes.get(WorkItemStatus.FAILED, 0),
                    "unresolved": outcomes.get(WorkItemStatus.IN_PROGRESS, 0),
                    "cache_hits": context.cache.hits,
                    "cache_size": len(context.cache),
                    "unpersisted": len(flushed.failed_sequence_ids),
                    "duration_ms": duration_ms,
                },
            )

            return PassResult(
                job_id=job_id,
                status=job.status,
                processed=len(items),
                completed=outcomes.get(WorkItemStatus.COMPLETED, 0),
                failed=outcomes.get(WorkItemStatus.FAILED, 0),
                unresolved=outcomes.get(WorkItemStatus.IN_PROGRESS, 0),
                unpersisted_sequence_ids=flushed.failed_sequence_ids,
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=duration_ms,
            )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _process_item(
        self,
        handler: WorkItemHandler,
        item: WorkItem,
        context: ProcessingContext,
    ) -> WorkItem:
        """Run the handler on one item and stamp the pass bookkeeping."""
        current = replace(item, status=WorkItemStatus.IN_PROGRESS)
        with LogContext.bind(sequence_id=str(item.sequence_id)):
            try:
                outcome = handler.process(current, context)
            except Exception as exc:
                logger.warning("work_item_handler_raised", exc_info=True)
                outcome = ItemOutcome.failed(dict(item.data), str(exc))

            if outcome.status == WorkItemStatus.FAILED:
                logger.info("work_item_failed", extra={"error": outcome.error_message})

        if outcome.status == WorkItemStatus.COMPLETED:
            current = replace(current, status=outcome.status,
                              success_result=outcome.success_result, failure_result=None)
        elif outcome.status == WorkItemStatus.FAILED:
            current = replace(current, status=outcome.status,
                              success_result=None, failure_result=outcome.failure_result)

        return replace(
            current,
            last_updated_on=self._clock.now(),
            iteration_id=item.iteration_id + 1,
        )

    def _flush(self, items: list[WorkItem]) -> FlushResult:
        result = self._writer.update(items)
        self._store.checkpoint()
        if result.failed_sequence_ids:
            logger.warning(
                "work_items_not_persisted",
                extra={"sequence_ids": list(result.failed_sequence_ids)},
            )
        return result

    def _rollup(self, job: UploadJob) -> UploadJob:
        counts = self._store.count_work_items_by_status(job.job_id)
        status = rollup_status(counts)
        job = replace(
            job,
            status=status,
            succeeded_count=counts.get(WorkItemStatus.COMPLETED, 0),
            failed_count=counts.get(WorkItemStatus.FAILED, 0),
            failure_result=failure_summary(counts) if status == JobStatus.FAILED else None,
            last_updated_on=self._clock.now(),
        )
        self._store.update_job(job)
        self._store.checkpoint()
        return job


def run_processing_pass(
    job_id: UUID,
    session_factory: Callable[[], Session],
    registry: HandlerRegistry,
    clock: Clock | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> PassResult:
    """
    Background trigger entry point: one pass on a fresh session.

    Checkpoints commit, so flushed batches survive a crash mid-pass.  On an
    unexpected error the uncommitted remainder is rolled back and the error
    re-raised.
    """
    session = session_factory()
    try:
        store = SqlAlchemyRecordStore(session, commit_on_checkpoint=True)
        processor = BackgroundProcessor(store, registry, clock=clock, batch_size=batch_size)
        result = processor.run_pass(job_id)
        session.commit()
        return result
    except Exception:
        session.rollback()
        logger.exception("processing_pass_failed", extra={"job_id": str(job_id)})
        raise
    finally:
        session.close()

"""
upload_batch.domain.types -- Pure frozen dataclasses for background processing.

ZERO I/O.  Follows upload_ingestion/domain/types.py: frozen dataclasses with
enum status fields and tuples for immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from upload_ingestion.domain.types import JobStatus, WorkItemStatus

ERROR_MESSAGE_KEY = "errorMessage"


@dataclass(frozen=True)
class ItemOutcome:
    """
    What a handler decided for one Work Item.

    COMPLETED carries ``success_result``; FAILED carries ``failure_result``
    (the record with ``errorMessage`` set).  IN_PROGRESS means unresolved:
    the item is left for a later pass.
    """

    status: WorkItemStatus
    success_result: dict[str, Any] | None = None
    failure_result: dict[str, Any] | None = None

    @classmethod
    def completed(cls, payload: dict[str, Any]) -> ItemOutcome:
        return cls(status=WorkItemStatus.COMPLETED, success_result=dict(payload))

    @classmethod
    def failed(cls, payload: dict[str, Any], message: str) -> ItemOutcome:
        result = dict(payload)
        result[ERROR_MESSAGE_KEY] = message
        return cls(status=WorkItemStatus.FAILED, failure_result=result)

    @classmethod
    def unresolved(cls) -> ItemOutcome:
        return cls(status=WorkItemStatus.IN_PROGRESS)

    @property
    def error_message(self) -> str | None:
        if self.failure_result is None:
            return None
        return self.failure_result.get(ERROR_MESSAGE_KEY)


@dataclass(frozen=True)
class PassResult:
    """
    Immutable result of one processing pass over a Job.

    Returned by ``BackgroundProcessor.run_pass()``.  ``skipped`` is True when
    the Job was already terminal and nothing was touched.
    """

    job_id: UUID
    status: JobStatus
    processed: int = 0
    completed: int = 0
    failed: int = 0
    unresolved: int = 0
    skipped: bool = False
    unpersisted_sequence_ids: tuple[int, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

"""
Job status rollup from Work Item status counts. Pure.

    any NEW / IN_PROGRESS      -> IN_PROGRESS (eligible for another pass)
    all COMPLETED (or none)    -> COMPLETED
    all FAILED                 -> FAILED
    otherwise                  -> COMPLETED_WITH_ERRORS
"""

from __future__ import annotations

from typing import Mapping

from upload_ingestion.domain.types import JobStatus, WorkItemStatus


def rollup_status(counts: Mapping[WorkItemStatus, int]) -> JobStatus:
    """Aggregate Work Item counts into a Job status."""
    pending = counts.get(WorkItemStatus.NEW, 0) + counts.get(WorkItemStatus.IN_PROGRESS, 0)
    if pending:
        return JobStatus.IN_PROGRESS

    completed = counts.get(WorkItemStatus.COMPLETED, 0)
    failed = counts.get(WorkItemStatus.FAILED, 0)
    if failed == 0:
        return JobStatus.COMPLETED
    if completed == 0:
        return JobStatus.FAILED
    return JobStatus.COMPLETED_WITH_ERRORS


def failure_summary(counts: Mapping[WorkItemStatus, int]) -> str:
    """Diagnostic text stored on a FAILED Job."""
    failed = counts.get(WorkItemStatus.FAILED, 0)
    return f"All {failed} work item(s) failed"

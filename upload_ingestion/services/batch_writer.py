"""
Batch writer: chunked Work Item persistence with per-item fallback.

Contract:
    ``insert()`` and ``update()`` split the items into chunks of
    ``batch_size`` and hand each chunk to the store's batch call.  When a
    batch call raises, every item of that chunk is retried on its own.  An
    item that still fails is logged and reported in the FlushResult; the
    writer itself never raises for a store error.

Invariants:
    - One bad item never costs the other items of its chunk.
    - Items are written in the order given.
"""

from __future__ import annotations

from typing import Callable, Iterator, Sequence

from upload_kernel.logging_config import get_logger

from upload_ingestion.domain.types import FlushResult, WorkItem
from upload_ingestion.services.record_store import RecordStore

logger = get_logger("ingestion.batch_writer")

DEFAULT_BATCH_SIZE = 10


def _chunks(items: Sequence[WorkItem], size: int) -> Iterator[Sequence[WorkItem]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BatchWriter:
    """Persists Work Items in fixed-size batches through a RecordStore."""

    def __init__(self, store: RecordStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._store = store
        self.batch_size = batch_size

    def insert(self, items: Sequence[WorkItem]) -> FlushResult:
        """Create new Work Items."""
        return self._write(
            items, self._store.create_work_items_batch, self._store.create_work_item, "insert",
        )

    def update(self, items: Sequence[WorkItem]) -> FlushResult:
        """Persist changed Work Items."""
        return self._write(
            items, self._store.update_work_items_batch, self._store.update_work_item, "update",
        )

    def _write(
        self,
        items: Sequence[WorkItem],
        batch_call: Callable[[Sequence[WorkItem]], None],
        single_call: Callable[[WorkItem], None],
        operation: str,
    ) -> FlushResult:
        result = FlushResult()
        for chunk in _chunks(list(items), self.batch_size):
            result = result.merge(self._flush(chunk, batch_call, single_call, operation))
        return result

    def _flush(
        self,
        chunk: Sequence[WorkItem],
        batch_call: Callable[[Sequence[WorkItem]], None],
        single_call: Callable[[WorkItem], None],
        operation: str,
    ) -> FlushResult:
        try:
            batch_call(chunk)
            return FlushResult(written=len(chunk), batches=1)
        except Exception:
            logger.warning(
                f"batch_{operation}_failed",
                extra={
                    "batch_len": len(chunk),
                    "first_sequence_id": chunk[0].sequence_id,
                    "last_sequence_id": chunk[-1].sequence_id,
                },
                exc_info=True,
            )

        written = 0
        failed: list[int] = []
        for item in chunk:
            try:
                single_call(item)
                written += 1
            except Exception:
                failed.append(item.sequence_id)
                logger.error(
                    f"work_item_{operation}_failed",
                    extra={"job_id": str(item.job_id), "sequence_id": item.sequence_id},
                    exc_info=True,
                )

        logger.info(
            f"batch_{operation}_fallback_completed",
            extra={"written": written, "failed": len(failed)},
        )
        return FlushResult(
            written=written,
            failed_sequence_ids=tuple(failed),
            batches=1,
            fallback_batches=1,
        )

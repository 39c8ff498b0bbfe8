"""
JobDispatcher -- In-process job queue with worker threads.

Contract:
    ``enqueue()`` delivers a Job id to background processing at least once.
    Worker threads take ids off the queue and run one pass each through the
    injected ``pass_runner``.

Architecture: upload_batch/services.  Implements the JobQueue protocol of
    upload_ingestion.services.upload_service.

Invariants enforced:
    - At most one running pass per Job.  A trigger for a Job whose pass is
      running is remembered and coalesced into one follow-up pass.
    - A Job id waiting in the queue is not queued twice.
    - Graceful shutdown: ``stop()`` lets running passes finish.

Non-goals:
    - NOT a distributed queue; exclusion holds within one process.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable
from uuid import UUID

from upload_kernel.logging_config import get_logger

logger = get_logger("batch.dispatcher")


class JobDispatcher:
    """Queue of Job ids served by a pool of worker threads."""

    def __init__(
        self,
        pass_runner: Callable[[UUID], Any],
        workers: int = 1,
        poll_interval_seconds: float = 0.1,
    ):
        if workers <= 0:
            raise ValueError(f"workers must be positive, got {workers}")
        self._pass_runner = pass_runner
        self._workers = workers
        self._poll_interval = poll_interval_seconds
        self._queue: queue.Queue[UUID] = queue.Queue()
        self._lock = threading.Condition()
        self._queued: set[UUID] = set()
        self._running: set[UUID] = set()
        self._rerun: set[UUID] = set()
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def enqueue(self, job_id: UUID) -> None:
        """Trigger a processing pass for ``job_id``."""
        with self._lock:
            if job_id in self._running:
                self._rerun.add(job_id)
                logger.debug("dispatch_coalesced", extra={"job_id": str(job_id)})
                return
            if job_id in self._queued:
                return
            self._queued.add(job_id)
            self._queue.put(job_id)
        logger.info("job_enqueued", extra={"job_id": str(job_id)})

    def start(self) -> None:
        """Start the worker threads."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._run_loop,
                name=f"upload-dispatcher-{i}",
                daemon=True,
            )
            for i in range(self._workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("dispatcher_started", extra={"workers": self._workers})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the workers to finish their current pass."""
        self._stop_event.set()
        for thread in self._threads:
            if thread.is_alive():
                thread.join(timeout=timeout)
        self._threads = []
        logger.info("dispatcher_stopped")

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is queued or running. Returns False on timeout."""
        with self._lock:
            return self._lock.wait_for(
                lambda: not self._queued and not self._running and not self._rerun,
                timeout=timeout,
            )

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Worker loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            try:
                job_id = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            try:
                self._dispatch(job_id)
            finally:
                self._queue.task_done()

    def _dispatch(self, job_id: UUID) -> None:
        with self._lock:
            self._queued.discard(job_id)
            self._running.add(job_id)

        try:
            self._pass_runner(job_id)
        except Exception:
            logger.exception("dispatch_pass_failed", extra={"job_id": str(job_id)})
        finally:
            with self._lock:
                self._running.discard(job_id)
                if job_id in self._rerun:
                    self._rerun.discard(job_id)
                    self._queued.add(job_id)
                    self._queue.put(job_id)
                self._lock.notify_all()

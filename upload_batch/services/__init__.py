"""Processing services: per-pass processor and the in-process dispatcher."""

from upload_batch.services.dispatcher import JobDispatcher
from upload_batch.services.processor import BackgroundProcessor, run_processing_pass

__all__ = [
    "BackgroundProcessor",
    "JobDispatcher",
    "run_processing_pass",
]

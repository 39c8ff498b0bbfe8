"""
WorkItemHandler protocol, ProcessingContext, and HandlerRegistry.

Contract:
    ``WorkItemHandler`` turns one Work Item into an ItemOutcome.
    ``HandlerRegistry`` stores handlers keyed by ``object_type``.
    ``default_handler_registry()`` returns a fresh, empty registry.

Architecture:
    upload_batch/tasks.  Imports only from upload_batch.domain,
    upload_ingestion.domain and the kernel exceptions.

Invariants enforced:
    - One handler per ``object_type`` string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from upload_kernel.exceptions import HandlerNotRegisteredError

from upload_batch.domain.enrichment import EnrichmentCache
from upload_batch.domain.types import ItemOutcome
from upload_ingestion.domain.types import UploadJob, WorkItem


@dataclass(frozen=True)
class ProcessingContext:
    """State shared by every handler call of one pass."""

    job: UploadJob
    cache: EnrichmentCache


@runtime_checkable
class WorkItemHandler(Protocol):
    """Protocol for per-object-type Work Item processing.

    Contract:
        - ``object_type``: key registered in HandlerRegistry.
        - ``process()``: handles ONE item and reports its outcome.  Domain
          failures come back as FAILED outcomes; a raised exception is
          turned into a FAILED item by the processor.

    Non-goals:
        - Does NOT persist anything -- the processor owns persistence.
    """

    @property
    def object_type(self) -> str: ...

    def process(self, item: WorkItem, context: ProcessingContext) -> ItemOutcome: ...


class HandlerRegistry:
    """Registry mapping object_type strings to WorkItemHandler implementations."""

    def __init__(self) -> None:
        self._handlers: dict[str, WorkItemHandler] = {}

    def register(self, handler: WorkItemHandler) -> None:
        """Register a handler.

        Raises:
            ValueError: If a handler for the same object_type is registered.
        """
        if handler.object_type in self._handlers:
            raise ValueError(
                f"Handler for object type '{handler.object_type}' is already registered"
            )
        self._handlers[handler.object_type] = handler

    def get(self, object_type: str) -> WorkItemHandler:
        """Retrieve the handler for object_type.

        Raises:
            HandlerNotRegisteredError: If no handler is registered.
        """
        try:
            return self._handlers[object_type]
        except KeyError:
            raise HandlerNotRegisteredError(object_type, self.list_object_types()) from None

    def list_object_types(self) -> tuple[str, ...]:
        """Return all registered object types, sorted."""
        return tuple(sorted(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, object_type: str) -> bool:
        return object_type in self._handlers


def default_handler_registry() -> HandlerRegistry:
    """Create and return a fresh, empty HandlerRegistry."""
    return HandlerRegistry()

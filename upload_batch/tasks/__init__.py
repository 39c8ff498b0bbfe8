"""
upload_batch.tasks -- Handler protocol, registry, and object-type handlers.

base.py imports nothing outside the domain packages.  Handler modules bring
their own downstream client protocols.
"""

from upload_batch.tasks.base import (
    HandlerRegistry,
    ProcessingContext,
    WorkItemHandler,
    default_handler_registry,
)
from upload_batch.tasks.org_tasks import (
    LocationClient,
    OrganisationClient,
    OrgStatus,
    OrgWorkItemHandler,
)

__all__ = [
    "HandlerRegistry",
    "LocationClient",
    "OrgStatus",
    "OrgWorkItemHandler",
    "OrganisationClient",
    "ProcessingContext",
    "WorkItemHandler",
    "default_handler_registry",
]

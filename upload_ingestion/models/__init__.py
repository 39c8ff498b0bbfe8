"""Upload ORM models (jobs and work items)."""

from upload_ingestion.models.upload import UploadJobModel, WorkItemModel

__all__ = ["UploadJobModel", "WorkItemModel"]

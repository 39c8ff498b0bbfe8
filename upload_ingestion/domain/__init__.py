"""Pure domain types and validators for upload ingestion. No I/O."""

from upload_ingestion.domain.header import (
    ColumnRules,
    build_column_rules,
    validate_file_shape,
    validate_header,
    validate_with_rules,
)
from upload_ingestion.domain.types import (
    FileFormat,
    FlushResult,
    JobStatus,
    RowRecord,
    SupportedColumns,
    UploadJob,
    WorkItem,
    WorkItemStatus,
)

__all__ = [
    "ColumnRules",
    "FileFormat",
    "FlushResult",
    "JobStatus",
    "RowRecord",
    "SupportedColumns",
    "UploadJob",
    "WorkItem",
    "WorkItemStatus",
    "build_column_rules",
    "validate_file_shape",
    "validate_header",
    "validate_with_rules",
]

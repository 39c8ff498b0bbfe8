"""
Typed exception hierarchy for the bulk upload pipeline.

Every error carries a machine-readable ``code`` class attribute and keeps its
context as attributes, so the transport layer can map an exception to a
client response without parsing message strings.

    BulkUploadError (base)
    |
    +-- ClientInputError            -- rejected before any Job is persisted
    |   +-- EmptyFileError
    |   +-- NoDataRowsError
    |   +-- EmptyHeaderError
    |   +-- MissingMandatoryFieldError
    |   +-- InvalidColumnError
    |   +-- FileTooLargeError
    |   +-- MalformedInputError
    |   +-- UnsupportedFileFormatError
    |   +-- UnsupportedObjectTypeError
    |
    +-- IngestionError              -- Job persisted, then marked FAILED
    |   +-- NoRootOrgAssociatedError
    |   +-- WorkItemsNotPersistedError
    |
    +-- RecordStoreError            -- store rejected a single write
    |   +-- WorkItemNotFoundError
    |
    +-- ProcessingError             -- background pass cannot start
        +-- JobNotFoundError
        +-- HandlerNotRegisteredError
"""


class BulkUploadError(Exception):
    """Base exception for all bulk upload errors."""

    code: str = "BULK_UPLOAD_ERROR"


# Client input errors


class ClientInputError(BulkUploadError):
    """The submitted file was rejected; nothing was persisted."""

    code: str = "CLIENT_ERROR"


class EmptyFileError(ClientInputError):
    """The file holds no rows at all."""

    code: str = "EMPTY_FILE"

    def __init__(self) -> None:
        super().__init__("Please provide valid csv file: file is empty")


class NoDataRowsError(ClientInputError):
    """The file holds a header row but no data rows."""

    code: str = "NO_DATA_ROWS"

    def __init__(self) -> None:
        super().__init__("Please provide valid csv file: no data rows found")


class EmptyHeaderError(ClientInputError):
    """The header row has no columns."""

    code: str = "EMPTY_HEADER_LINE"

    def __init__(self) -> None:
        super().__init__("Header line of the file is empty")


class MissingMandatoryFieldError(ClientInputError):
    """A mandatory column is absent from the header."""

    code: str = "MANDATORY_PARAMETER_MISSING"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Mandatory parameter {field} is missing")


class InvalidColumnError(ClientInputError):
    """A header column is not among the allowed columns."""

    code: str = "INVALID_COLUMNS"

    def __init__(self, column: str, valid_columns: list[str]):
        self.column = column
        self.valid_columns = list(valid_columns)
        super().__init__(
            f"Invalid column: {column}. Valid columns are: {', '.join(self.valid_columns)}"
        )


class FileTooLargeError(ClientInputError):
    """The file has more data rows than allowed."""

    code: str = "DATA_SIZE_EXCEEDED"

    def __init__(self, max_allowed: int):
        self.max_allowed = max_allowed
        super().__init__(f"Maximum number of records allowed is {max_allowed}")


class MalformedInputError(ClientInputError):
    """The file bytes could not be decoded into rows."""

    code: str = "MALFORMED_INPUT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Unable to read file: {reason}")


class UnsupportedFileFormatError(ClientInputError):
    """No tabular parser exists for the requested format."""

    code: str = "UNSUPPORTED_FILE_FORMAT"

    def __init__(self, file_format: str, supported: tuple[str, ...]):
        self.file_format = file_format
        self.supported = supported
        super().__init__(
            f"Unsupported file format {file_format!r}; supported: {', '.join(supported)}"
        )


class UnsupportedObjectTypeError(ClientInputError):
    """No upload configuration exists for the requested object type."""

    code: str = "UNSUPPORTED_OBJECT_TYPE"

    def __init__(self, object_type: str, supported: tuple[str, ...]):
        self.object_type = object_type
        self.supported = supported
        super().__init__(
            f"Unsupported object type {object_type!r}; supported: {', '.join(supported)}"
        )


# Ingestion errors


class IngestionError(BulkUploadError):
    """Ingestion failed after the Job record was created."""

    code: str = "INGESTION_ERROR"


class NoRootOrgAssociatedError(IngestionError):
    """The requester has no active root organisation to scope the upload."""

    code: str = "NO_ROOT_ORG_ASSOCIATED"

    def __init__(self, requested_by: str):
        self.requested_by = requested_by
        super().__init__(
            f"Requested by {requested_by} is not associated with any root organisation"
        )


class WorkItemsNotPersistedError(IngestionError):
    """Not a single Work Item of the upload could be written."""

    code: str = "WORK_ITEMS_NOT_PERSISTED"

    def __init__(self, job_id: str, attempted: int):
        self.job_id = job_id
        self.attempted = attempted
        super().__init__(
            f"None of the {attempted} work items of upload job {job_id} could be stored"
        )


# Record store errors


class RecordStoreError(BulkUploadError):
    """The record store rejected a single write."""

    code: str = "RECORD_STORE_ERROR"


class WorkItemNotFoundError(RecordStoreError):
    """An update targeted a Work Item that does not exist."""

    code: str = "WORK_ITEM_NOT_FOUND"

    def __init__(self, job_id: str, sequence_id: int):
        self.job_id = job_id
        self.sequence_id = sequence_id
        super().__init__(f"Work item {sequence_id} of upload job {job_id} not found")


# Processing errors


class ProcessingError(BulkUploadError):
    """A background processing pass cannot run."""

    code: str = "PROCESSING_ERROR"


class JobNotFoundError(ProcessingError):
    """No Job exists for the given id."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Upload job {job_id} not found")


class HandlerNotRegisteredError(ProcessingError):
    """No work item handler is registered for the Job's object type."""

    code: str = "HANDLER_NOT_REGISTERED"

    def __init__(self, object_type: str, available: tuple[str, ...]):
        self.object_type = object_type
        self.available = available
        super().__init__(
            f"No work item handler registered for {object_type!r}. "
            f"Available: {list(available)}"
        )

"""Ingestion services: record store, batch writer, lookups, submission."""

from upload_ingestion.services.batch_writer import BatchWriter
from upload_ingestion.services.lookup import (
    ConfigLookupService,
    IdentityService,
    LookupService,
    RequesterScope,
    resolve_requester_scope,
)
from upload_ingestion.services.record_store import RecordStore, SqlAlchemyRecordStore
from upload_ingestion.services.upload_service import JobQueue, UploadService

__all__ = [
    "BatchWriter",
    "ConfigLookupService",
    "IdentityService",
    "JobQueue",
    "LookupService",
    "RecordStore",
    "RequesterScope",
    "SqlAlchemyRecordStore",
    "UploadService",
    "resolve_requester_scope",
]

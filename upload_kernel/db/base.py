"""
Module: upload_kernel.db.base
Responsibility: Declarative base for the upload pipeline's SQLAlchemy models.
    Provides the UUID primary key convention and the type annotation map used
    by every table.
Architecture position: Kernel > DB.  Lowest-level import target; model files
    in upload_ingestion import from here.  MUST NOT import from services or
    outer layers.

Invariants enforced:
    - UUID primary keys stored as String(36) so the same schema runs on
      PostgreSQL and SQLite.
    - datetime columns are timezone-aware.  Timestamps are written from the
      injected Clock, never from server defaults.

Failure modes:
    - IntegrityError on duplicate primary key.
"""

from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp that always loads as UTC.

    SQLite drops tzinfo on storage; rows read back are re-tagged as UTC so
    DTOs compare equal to the Clock values they were written from.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """
    Declarative base for all upload models.

    Guarantees:
        - id is a uuid4-generated UUID stored as String(36).
        - datetime maps to UTCDateTime (timezone-aware, loaded as UTC).
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )

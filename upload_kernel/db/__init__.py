"""Database base classes and engine management."""

from upload_kernel.db.base import Base, UTCDateTime, UUIDString

__all__ = ["Base", "UTCDateTime", "UUIDString"]

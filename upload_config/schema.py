"""
Upload configuration schema.

Frozen dataclasses describing how each object type is uploaded.  The loader
parses ``sets/*.yaml`` into these types; services receive them at
construction and never read YAML themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Per object type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SupportedColumnsDef:
    """
    Externally facing column names for an object type.

    ``alias_map`` maps a display header (e.g. "Organisation Name") to the
    internal field name (e.g. "orgName").  ``mandatory_columns`` are internal
    names that the resolved header must cover.
    """

    alias_map: dict[str, str] = field(default_factory=dict)
    mandatory_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class ObjectTypeConfig:
    """Column rules and per-record rules for one uploadable object type."""

    object_type: str
    allowed_columns: tuple[str, ...]
    known_columns: tuple[str, ...] = ()
    all_fields_mandatory: bool = False
    case_insensitive: bool = False
    supported_columns: SupportedColumnsDef | None = None
    record_mandatory_columns: tuple[str, ...] = ()
    organisation_types: tuple[str, ...] = ()
    require_channel: bool = False


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadSettings:
    """Complete bulk upload configuration."""

    write_batch_size: int = 10
    max_rows: int = 5000
    default_file_format: str = "csv"
    database_url: str = "sqlite:///bulk_upload.db"
    dispatcher_workers: int = 1
    object_types: dict[str, ObjectTypeConfig] = field(default_factory=dict)

    def object_type(self, name: str) -> ObjectTypeConfig:
        """Return the config for ``name``; KeyError names the known types."""
        try:
            return self.object_types[name]
        except KeyError:
            raise KeyError(
                f"Unknown object type {name!r}. "
                f"Configured: {sorted(self.object_types)}"
            ) from None

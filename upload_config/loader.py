"""
Configuration Loader (``upload_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``upload_config.schema``.  Runtime callers go through
``upload_config.get_upload_settings()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* ``write_batch_size``, ``max_rows`` and ``dispatcher_workers`` are positive.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``allowed_columns`` for an object type  -> ``KeyError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from upload_config.schema import ObjectTypeConfig, SupportedColumnsDef, UploadSettings

_SUPPORTED_FORMATS = ("csv", "xlsx")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def parse_supported_columns(data: dict[str, Any] | None) -> SupportedColumnsDef | None:
    """Parse the optional ``supported_columns`` block."""
    if not data:
        return None
    alias_map = data.get("alias_map") or {}
    if not isinstance(alias_map, dict):
        raise ValueError("supported_columns.alias_map must be a mapping")
    return SupportedColumnsDef(
        alias_map={str(k): str(v) for k, v in alias_map.items()},
        mandatory_columns=tuple(data.get("mandatory_columns", ())),
    )


def parse_object_type(name: str, data: dict[str, Any]) -> ObjectTypeConfig:
    """
    Parse one ``object_types`` entry.

    Raises:
        KeyError: if ``allowed_columns`` is missing.
        ValueError: if ``allowed_columns`` is empty.
    """
    allowed = tuple(data["allowed_columns"])
    if not allowed:
        raise ValueError(f"object type {name!r} has no allowed_columns")
    return ObjectTypeConfig(
        object_type=name,
        allowed_columns=allowed,
        known_columns=tuple(data.get("known_columns", allowed)),
        all_fields_mandatory=bool(data.get("all_fields_mandatory", False)),
        case_insensitive=bool(data.get("case_insensitive", False)),
        supported_columns=parse_supported_columns(data.get("supported_columns")),
        record_mandatory_columns=tuple(data.get("record_mandatory_columns", ())),
        organisation_types=tuple(data.get("organisation_types", ())),
        require_channel=bool(data.get("require_channel", False)),
    )


def parse_settings(data: dict[str, Any]) -> UploadSettings:
    """
    Parse a complete settings document.

    Raises:
        ValueError: on non-positive sizes or an unsupported default format.
        KeyError: on a malformed object type entry.
    """
    default_format = data.get("default_file_format", "csv")
    if default_format not in _SUPPORTED_FORMATS:
        raise ValueError(
            f"default_file_format must be one of {_SUPPORTED_FORMATS}, got {default_format!r}"
        )
    object_types = {
        name: parse_object_type(name, entry or {})
        for name, entry in (data.get("object_types") or {}).items()
    }
    return UploadSettings(
        write_batch_size=_positive_int(data, "write_batch_size", 10),
        max_rows=_positive_int(data, "max_rows", 5000),
        default_file_format=default_format,
        database_url=data.get("database_url", "sqlite:///bulk_upload.db"),
        dispatcher_workers=_positive_int(data, "dispatcher_workers", 1),
        object_types=object_types,
    )
